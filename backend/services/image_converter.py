"""Image-to-PDF collaborators."""
import asyncio
import io
import logging

import fitz  # PyMuPDF
from PIL import Image

from config import IMAGE_TO_PDF_API_URL, OCR_API_KEY
from services.errors import OcrFailure
from services.ocr_client import BinaryServiceClient

logger = logging.getLogger(__name__)


class HttpImageConverter(BinaryServiceClient):
    """Remote raster-to-PDF conversion service."""

    def __init__(self, base_url: str = IMAGE_TO_PDF_API_URL, api_key: str = OCR_API_KEY, **kwargs):
        super().__init__(base_url, api_key, **kwargs)

    async def convert(self, image_bytes: bytes, file_name: str = "image") -> bytes:
        return await self._post_file(image_bytes, file_name, "application/octet-stream")


class PyMuPDFImageConverter:
    """Local conversion: one image becomes a one-page PDF."""

    async def convert(self, image_bytes: bytes, file_name: str = "image") -> bytes:
        return await asyncio.to_thread(self._convert, image_bytes, file_name)

    @staticmethod
    def _convert(image_bytes: bytes, file_name: str) -> bytes:
        try:
            # Normalise through Pillow so every format Pillow reads is accepted
            with Image.open(io.BytesIO(image_bytes)) as image:
                buffer = io.BytesIO()
                image.convert("RGB").save(buffer, format="PNG")

            image_document = fitz.open(stream=buffer.getvalue(), filetype="png")
            try:
                return image_document.convert_to_pdf()
            finally:
                image_document.close()
        except Exception as e:
            logger.error(f"Image conversion failed for {file_name}: {str(e)}")
            raise OcrFailure(f"Image conversion failed: {str(e)}") from e


def default_image_converter():
    """Remote converter when configured, local PyMuPDF conversion otherwise."""
    if IMAGE_TO_PDF_API_URL:
        return HttpImageConverter()
    return PyMuPDFImageConverter()
