"""Binary page reader for PDF, DOCX and image uploads."""
import io
import logging
import os
import zipfile
from typing import List, Optional

import docx
import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from models.analysis import FileType, PageReadResult
from services.errors import ExtractionFailure, ParseFailure

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".tif", ".tiff", ".bmp"}

IMAGE_SIGNATURES = (
    b"\x89PNG\r\n\x1a\n",
    b"\xff\xd8\xff",  # JPEG
    b"GIF87a",
    b"GIF89a",
    b"II*\x00",  # TIFF little endian
    b"MM\x00*",  # TIFF big endian
    b"BM",
)


def _sniff_magic(data: bytes) -> FileType:
    head = data[:1024]
    if b"%PDF-" in head:
        return FileType.PDF
    if head.startswith(IMAGE_SIGNATURES) or (head[:4] == b"RIFF" and head[8:12] == b"WEBP"):
        return FileType.IMAGE
    if head.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                if "word/document.xml" in archive.namelist():
                    return FileType.DOCX
        except zipfile.BadZipFile:
            return FileType.UNKNOWN
    return FileType.UNKNOWN


def sniff_file_type(data: bytes, file_name: str = "", mime_type: Optional[str] = None) -> FileType:
    """
    Decide the file type of an upload.

    Magic bytes win over the MIME hint, which wins over the extension.

    Args:
        data: Raw file bytes
        file_name: Original file name (extension hint)
        mime_type: MIME type declared by the uploader

    Returns:
        FileType (UNKNOWN when nothing matches)
    """
    file_type = _sniff_magic(data or b"")
    if file_type != FileType.UNKNOWN:
        return file_type

    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return FileType.PDF
    if mime == DOCX_MIME:
        return FileType.DOCX
    if mime.startswith("image/"):
        return FileType.IMAGE

    extension = os.path.splitext(file_name or "")[1].lower()
    if extension == ".pdf":
        return FileType.PDF
    if extension == ".docx":
        return FileType.DOCX
    if extension in IMAGE_EXTENSIONS:
        return FileType.IMAGE

    return FileType.UNKNOWN


class PageReader:
    """Reads page structure and text out of uploaded byte buffers."""

    def count_pages(self, data: bytes, file_type: FileType) -> int:
        """
        Structural page count, without text extraction.

        Args:
            data: Raw file bytes
            file_type: Sniffed or declared file type

        Returns:
            Number of pages (always 1 for DOCX and images)

        Raises:
            ParseFailure: If no page tree can be found
        """
        if file_type == FileType.PDF:
            pdf_document = self._open_pdf(data)
            try:
                return pdf_document.page_count
            finally:
                pdf_document.close()

        if file_type == FileType.DOCX:
            self._open_docx(data)
            return 1

        if file_type == FileType.IMAGE:
            self._verify_image(data)
            return 1

        raise ParseFailure(f"Cannot read pages of a {file_type.value} file")

    def read_pages(self, data: bytes, file_type: FileType) -> PageReadResult:
        """
        Page count plus per-page text.

        A page whose extraction fails, or which carries only images or vector
        graphics and no text, gets ``None`` (text not recoverable).

        Raises:
            ParseFailure: If no page tree can be found
            ExtractionFailure: If DOCX text cannot be read from a valid package
        """
        if file_type == FileType.PDF:
            return self._read_pdf(data)

        if file_type == FileType.DOCX:
            document = self._open_docx(data)
            try:
                text = self._docx_text(document)
            except Exception as e:
                raise ExtractionFailure(f"DOCX text extraction failed: {str(e)}") from e
            return PageReadResult(page_count=1, page_texts=[text])

        if file_type == FileType.IMAGE:
            self._verify_image(data)
            return PageReadResult(page_count=1, page_texts=[None])

        raise ParseFailure(f"Cannot read pages of a {file_type.value} file")

    def _read_pdf(self, data: bytes) -> PageReadResult:
        pdf_document = self._open_pdf(data)
        try:
            if pdf_document.is_encrypted:
                return PageReadResult(
                    page_count=pdf_document.page_count,
                    page_texts=[None] * pdf_document.page_count,
                )

            page_texts: List[Optional[str]] = []

            for page_num in range(pdf_document.page_count):
                try:
                    page = pdf_document[page_num]
                    text = page.get_text()
                    if not text.strip() and self._has_graphics(page):
                        text = None
                except Exception as e:
                    logger.warning(
                        f"Text extraction failed on page {page_num + 1}: {str(e)}",
                        extra={"error_code": ExtractionFailure.code},
                    )
                    text = None
                page_texts.append(text)

            return PageReadResult(page_count=len(page_texts), page_texts=page_texts)
        finally:
            pdf_document.close()

    @staticmethod
    def _has_graphics(page) -> bool:
        """Images or vector drawings on a page without text mean the text is not recoverable."""
        if page.get_images(full=False):
            return True
        return bool(page.get_drawings())

    @staticmethod
    def _open_pdf(data: bytes):
        if not data:
            raise ParseFailure("Empty PDF buffer")

        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ParseFailure(f"Unreadable PDF: {str(e)}") from e

        # Uploaded PDFs are often encrypted with a blank password
        if pdf_document.needs_pass and not pdf_document.authenticate(""):
            logger.warning("PDF is password protected, page text unavailable")

        if pdf_document.page_count < 1:
            pdf_document.close()
            raise ParseFailure("PDF has no pages")

        return pdf_document

    @staticmethod
    def _open_docx(data: bytes):
        try:
            return docx.Document(io.BytesIO(data))
        except Exception as e:
            raise ParseFailure(f"Unreadable DOCX: {str(e)}") from e

    @staticmethod
    def _docx_text(document) -> str:
        parts = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                for cell in row.cells:
                    parts.append(cell.text)
        return "\n".join(part for part in parts if part)

    @staticmethod
    def _verify_image(data: bytes) -> None:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ParseFailure(f"Unreadable image: {str(e)}") from e
