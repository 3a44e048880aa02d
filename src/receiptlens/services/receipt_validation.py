import json
import logging
import math
from typing import Any, Dict, List, Optional

from receiptlens.exceptions import GenerationFailure, ValidationFailure

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("store_name", "date", "total")


def parse_structured_response(response_text: str) -> Dict[str, Any]:
    """Parses the model response into an untyped document."""
    content = (response_text or "").strip()
    # The model should return just JSON. If it includes markdown, strip it.
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[: -len("```")]

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationFailure(f"Failed to parse model response: {e}") from e

    if not isinstance(document, dict):
        raise GenerationFailure(
            f"Model response is not a JSON object (got {type(document).__name__})"
        )
    return document


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def to_amount(value: Any) -> Optional[float]:
    """Coerces a number or numeric string to float. None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").lstrip("$")
        try:
            amount = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    # json.loads accepts NaN/Infinity and float() accepts "inf"
    return amount if math.isfinite(amount) else None


def validate_receipt_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks the mandatory receipt fields and returns the document ready to store.

    store_name, date and total must be present. Everything else passes through
    as the model produced it, except that currency fields are coerced to float
    and non-object entries in items are dropped.

    Raises:
        ValidationFailure: a mandatory field is missing or total is not a number.
    """
    missing = [field for field in REQUIRED_FIELDS if _is_missing(document.get(field))]
    if missing:
        raise ValidationFailure(f"Missing required receipt fields: {', '.join(missing)}")

    total = to_amount(document["total"])
    if total is None:
        raise ValidationFailure(f"Invalid receipt total: {document['total']!r}")

    validated = dict(document)
    validated["store_name"] = str(document["store_name"]).strip()
    validated["date"] = str(document["date"]).strip()
    validated["total"] = total

    for field in ("subtotal", "tax"):
        raw = document.get(field)
        validated[field] = to_amount(raw)
        if raw is not None and validated[field] is None:
            logger.warning(f"Could not parse {field} '{raw}' from model response. Storing as null.")

    location = document.get("location")
    validated["location"] = str(location) if location is not None else None

    items = document.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        logger.warning(f"Model returned 'items' not as a list: {type(items)}. Defaulting to empty list.")
        items = []
    kept: List[Dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning(f"Skipping item as it's not a JSON object: {item!r}")
            continue
        kept.append(item)
    validated["items"] = kept

    return validated
