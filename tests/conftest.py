"""Shared fixtures: in-memory PDF, DOCX and image builders."""
import io

import docx
import fitz  # PyMuPDF
import pytest
from PIL import Image


def _png_bytes(size=(40, 40), color="white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    """A small valid PNG."""
    return _png_bytes()


@pytest.fixture
def make_pdf():
    """
    Build a PDF with the given number of words per page.

    ``image_pages`` are 0-based page indexes that also get an embedded image.
    """
    def _make(page_word_counts, image_pages=(), owner_password=None, user_password=None):
        pdf_document = fitz.open()
        for page_index, word_count in enumerate(page_word_counts):
            page = pdf_document.new_page()
            if word_count:
                words = ["word"] * word_count
                lines = [" ".join(words[i:i + 12]) for i in range(0, word_count, 12)]
                page.insert_text((40, 40), "\n".join(lines), fontsize=7)
            if page_index in image_pages:
                page.insert_image(fitz.Rect(100, 400, 300, 600), stream=_png_bytes((80, 80), "gray"))

        options = {}
        if owner_password is not None or user_password is not None:
            options = {
                "encryption": fitz.PDF_ENCRYPT_AES_256,
                "owner_pw": owner_password or "",
                "user_pw": user_password or "",
            }
        data = pdf_document.tobytes(**options)
        pdf_document.close()
        return data

    return _make


@pytest.fixture
def make_docx():
    """Build a DOCX holding ``word_count`` words."""
    def _make(word_count):
        document = docx.Document()
        if word_count:
            document.add_paragraph(" ".join(["word"] * word_count))
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _make
