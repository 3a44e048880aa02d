"""Tests for the OCR, OpenAI and Google Drive clients (mocked SDK calls)."""

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytesseract
from googleapiclient.errors import HttpError
from openai import OpenAIError
from PIL import Image

from receiptlens.exceptions import (
    ExtractionFailure,
    FetchFailure,
    GenerationFailure,
    StoreFailure,
)
from receiptlens.external_apis.google_drive_client import (
    GoogleDriveBlobStore,
    build_gdrive_service,
)
from receiptlens.external_apis.ocr_client import TesseractTextExtractor, preprocess_image
from receiptlens.external_apis.openai_client import (
    OpenAIStructuredExtractor,
    build_receipt_parsing_prompt,
    create_openai_client,
)


def _png_bytes(mode="RGB"):
    buffer = io.BytesIO()
    Image.new(mode, (20, 10), color=255 if mode == "L" else (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestTesseractTextExtractor:
    def test_preprocess_converts_to_rgb(self):
        assert preprocess_image(_png_bytes(mode="L")).mode == "RGB"

    @pytest.mark.asyncio
    async def test_detect_text(self):
        with patch("receiptlens.external_apis.ocr_client.pytesseract.image_to_string",
                   return_value="  TOTAL 4.33\n") as mock_ocr:
            text = await TesseractTextExtractor(lang="eng").detect_text(_png_bytes())

        assert text == "TOTAL 4.33"
        assert mock_ocr.call_args.kwargs["lang"] == "eng"

    @pytest.mark.asyncio
    async def test_no_text_detected(self):
        with patch("receiptlens.external_apis.ocr_client.pytesseract.image_to_string", return_value="\n\n"):
            with pytest.raises(ExtractionFailure, match="No text detected in image"):
                await TesseractTextExtractor().detect_text(_png_bytes())

    @pytest.mark.asyncio
    async def test_unreadable_image(self):
        with pytest.raises(ExtractionFailure, match="Unreadable image"):
            await TesseractTextExtractor().detect_text(b"definitely not an image")

    @pytest.mark.asyncio
    async def test_tesseract_missing(self):
        with patch("receiptlens.external_apis.ocr_client.pytesseract.image_to_string",
                   side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(ExtractionFailure, match="Text detection failed"):
                await TesseractTextExtractor().detect_text(_png_bytes())


class TestOpenAIStructuredExtractor:
    def test_prompt_embeds_text_and_schema(self):
        prompt = build_receipt_parsing_prompt("GARLIC LOOSE 0.89")
        assert "GARLIC LOOSE 0.89" in prompt
        for field in ("store_name", "location", "date", "subtotal", "tax", "total",
                      "description", "general_name", "qty", "unit_price", "price", "tags"):
            assert f'"{field}"' in prompt

    def test_create_client_without_key(self):
        assert create_openai_client(None) is None

    @pytest.mark.asyncio
    async def test_generate_requires_client(self):
        with pytest.raises(GenerationFailure, match="not initialized"):
            await OpenAIStructuredExtractor(None).generate("prompt")

    @pytest.mark.asyncio
    async def test_generate_requests_json_mode(self):
        mock_response = MagicMock()
        mock_response.choices = [MagicMock()]
        mock_response.choices[0].message.content = '{"store_name": "Walmart"}'
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        result = await OpenAIStructuredExtractor(mock_client, model="gpt-4o-mini").generate("parse this")

        assert result == '{"store_name": "Walmart"}'
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["content"] == "parse this"

    @pytest.mark.asyncio
    async def test_empty_content(self):
        mock_response = MagicMock()
        mock_response.choices = [MagicMock()]
        mock_response.choices[0].message.content = None
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with pytest.raises(GenerationFailure, match="empty content"):
            await OpenAIStructuredExtractor(mock_client).generate("parse this")

    @pytest.mark.asyncio
    async def test_api_error(self):
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=OpenAIError("rate limited"))

        with pytest.raises(GenerationFailure, match="rate limited"):
            await OpenAIStructuredExtractor(mock_client).generate("parse this")


class _FakeDownloader:
    def __init__(self, fd, request):
        self.fd = fd
        self.request = request

    def next_chunk(self):
        self.fd.write(b"image-bytes")
        return None, True


class _FailingDownloader(_FakeDownloader):
    def next_chunk(self):
        raise OSError("connection reset by peer")


class TestGoogleDriveBlobStore:
    def test_build_service_without_credentials(self):
        assert build_gdrive_service(None) is None

    def test_build_service_missing_file(self, tmp_path):
        assert build_gdrive_service(str(tmp_path / "missing.json")) is None

    @pytest.mark.asyncio
    async def test_download(self):
        service = MagicMock()
        with patch("receiptlens.external_apis.google_drive_client.MediaIoBaseDownload", _FakeDownloader):
            content = await GoogleDriveBlobStore(service).download("folder-1", "file-123")

        assert content == b"image-bytes"
        service.files().get_media.assert_called_with(fileId="file-123")

    @pytest.mark.asyncio
    async def test_download_failure(self):
        with patch("receiptlens.external_apis.google_drive_client.MediaIoBaseDownload", _FailingDownloader):
            with pytest.raises(FetchFailure, match="file-123"):
                await GoogleDriveBlobStore(MagicMock()).download("folder-1", "file-123")

    @pytest.mark.asyncio
    async def test_delete(self):
        service = MagicMock()

        await GoogleDriveBlobStore(service).delete("folder-1", "file-123")

        service.files().delete.assert_called_with(fileId="file-123")
        service.files().delete().execute.assert_called()

    @pytest.mark.asyncio
    async def test_delete_failure(self):
        service = MagicMock()
        resp = MagicMock(status=403, reason="Forbidden")
        service.files().delete().execute.side_effect = HttpError(resp, b"insufficient permissions")

        with pytest.raises(StoreFailure, match="Failed to delete file-123"):
            await GoogleDriveBlobStore(service).delete("folder-1", "file-123")
