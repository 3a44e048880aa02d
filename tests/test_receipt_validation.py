"""Tests for parsing and validating the structured extraction response."""

import json

import pytest

from receiptlens.exceptions import GenerationFailure, ValidationFailure
from receiptlens.services.receipt_validation import (
    parse_structured_response,
    validate_receipt_document,
)


class TestParseStructuredResponse:
    def test_parse_plain_json(self):
        doc = parse_structured_response('{"store_name": "Walmart", "total": 3.5}')
        assert doc == {"store_name": "Walmart", "total": 3.5}

    def test_parse_with_markdown_fences(self):
        text = """```json
{"store_name": "Walmart", "date": "2025-01-01", "total": 3.5}
```"""
        doc = parse_structured_response(text)
        assert doc["store_name"] == "Walmart"

    def test_invalid_json(self):
        with pytest.raises(GenerationFailure, match="Failed to parse model response"):
            parse_structured_response("I could not read this receipt.")

    def test_empty_response(self):
        with pytest.raises(GenerationFailure):
            parse_structured_response("")

    def test_top_level_array_is_rejected(self):
        with pytest.raises(GenerationFailure, match="not a JSON object"):
            parse_structured_response(json.dumps([{"store_name": "Walmart"}]))


class TestValidateReceiptDocument:
    BASE = {"store_name": "DOLLAR TREE", "date": "2025-05-02", "total": 27.60}

    @pytest.mark.parametrize("field", ["store_name", "date", "total"])
    def test_missing_field(self, field):
        doc = {k: v for k, v in self.BASE.items() if k != field}
        with pytest.raises(ValidationFailure, match=field):
            validate_receipt_document(doc)

    @pytest.mark.parametrize("field", ["store_name", "date"])
    def test_blank_string_counts_as_missing(self, field):
        doc = dict(self.BASE, **{field: "  "})
        with pytest.raises(ValidationFailure, match="Missing required receipt fields"):
            validate_receipt_document(doc)

    def test_reports_every_missing_field(self):
        with pytest.raises(ValidationFailure, match="store_name, date, total"):
            validate_receipt_document({"items": []})

    def test_numeric_string_total_is_coerced(self):
        result = validate_receipt_document(dict(self.BASE, total="$1,027.60"))
        assert result["total"] == 1027.60

    def test_non_numeric_total_is_rejected(self):
        with pytest.raises(ValidationFailure, match="Invalid receipt total"):
            validate_receipt_document(dict(self.BASE, total="unknown"))

    def test_zero_total_is_accepted(self):
        assert validate_receipt_document(dict(self.BASE, total=0))["total"] == 0.0

    def test_optional_fields_pass_through(self):
        result = validate_receipt_document(dict(self.BASE, subtotal=None, tax="n/a", location=None))
        assert result["subtotal"] is None
        assert result["tax"] is None
        assert result["location"] is None
        assert result["items"] == []

    def test_items_are_kept_as_produced(self):
        item = {"description": "BAG FEE", "general_name": "bag fee", "qty": 1, "price": 0.10, "tags": ["fee"],
                "unit_price": None}
        result = validate_receipt_document(dict(self.BASE, items=[item]))
        assert result["items"] == [item]

    def test_non_object_items_are_dropped(self):
        result = validate_receipt_document(dict(self.BASE, items=[{"description": "MILK"}, "garbage", 3]))
        assert result["items"] == [{"description": "MILK"}]

    def test_items_not_a_list_becomes_empty(self):
        result = validate_receipt_document(dict(self.BASE, items={"description": "MILK"}))
        assert result["items"] == []

    def test_input_document_is_not_mutated(self):
        doc = dict(self.BASE, total="12.00")
        validate_receipt_document(doc)
        assert doc["total"] == "12.00"

    @pytest.mark.parametrize("total", ["inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_total_is_rejected(self, total):
        with pytest.raises(ValidationFailure, match="Invalid receipt total"):
            validate_receipt_document(dict(self.BASE, total=total))

    def test_nan_literal_from_model_is_rejected(self):
        doc = parse_structured_response('{"store_name": "S", "date": "2025-01-01", "total": NaN}')
        with pytest.raises(ValidationFailure, match="Invalid receipt total"):
            validate_receipt_document(doc)

    def test_non_finite_subtotal_and_tax_become_null(self):
        result = validate_receipt_document(dict(self.BASE, subtotal=float("inf"), tax="nan"))
        assert result["subtotal"] is None
        assert result["tax"] is None
