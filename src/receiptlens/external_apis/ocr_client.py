"""
Text extraction for receipt images using Tesseract.
"""

import asyncio
import io
import logging
from typing import Optional

import pytesseract
from PIL import Image, UnidentifiedImageError

from receiptlens.exceptions import ExtractionFailure

logger = logging.getLogger(__name__)


def preprocess_image(image_bytes: bytes) -> Image.Image:
    """Opens image bytes and normalizes the mode for OCR."""
    img = Image.open(io.BytesIO(image_bytes))
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


class TesseractTextExtractor:
    def __init__(self, lang: str = "eng", tesseract_cmd: Optional[str] = None):
        self.lang = lang
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def _detect_sync(self, image_bytes: bytes) -> str:
        image = preprocess_image(image_bytes)
        return pytesseract.image_to_string(image, lang=self.lang)

    async def detect_text(self, image_bytes: bytes) -> str:
        """
        Returns the full recognized text of the image.

        Raises:
            ExtractionFailure: the image could not be read, Tesseract failed,
                or no text was found.
        """
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self._detect_sync, image_bytes)
        except UnidentifiedImageError as e:
            raise ExtractionFailure(f"Unreadable image: {e}") from e
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise ExtractionFailure(f"Text detection failed: {e}") from e

        text = (text or "").strip()
        if not text:
            raise ExtractionFailure("No text detected in image")
        return text
