"""Unit tests for the worker-side fast and deep passes."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.analysis import AnalysisPhase, Density, FileType
from services.errors import ParseFailure
from services.page_reader import PageReader
from services.page_analyzer import (
    AnalysisRequest,
    RequestKind,
    ResponseKind,
    all_scanned,
    handle_request,
    run_deep_pass,
    run_fast_pass,
)


class TestFastPass:
    """Test suite for run_fast_pass."""

    def test_pdf_pages_are_worst_case_high(self, make_pdf):
        analysis = run_fast_pass(make_pdf([0, 10, 400]), "a.pdf", FileType.PDF, 9.0)
        assert analysis.phase == AnalysisPhase.FAST
        assert analysis.total_pages == 3
        assert [page.page_number for page in analysis.pages] == [1, 2, 3]
        assert all(page.density == Density.HIGH for page in analysis.pages)
        assert analysis.total_price == pytest.approx(27.0)

    def test_image_is_one_scanned_page(self, png_bytes):
        analysis = run_fast_pass(png_bytes, "scan.png", FileType.IMAGE, 9.0)
        assert analysis.total_pages == 1
        assert analysis.pages[0].density == Density.SCANNED
        assert analysis.is_image is True
        assert analysis.file_type == FileType.IMAGE

    def test_docx_pages_estimated_at_worst_case(self, make_docx):
        analysis = run_fast_pass(make_docx(900), "letter.docx", FileType.DOCX, 9.0)
        assert analysis.total_pages == 4
        assert all(page.density == Density.HIGH for page in analysis.pages)
        assert analysis.total_price == pytest.approx(36.0)

    def test_short_docx_is_one_page(self, make_docx):
        analysis = run_fast_pass(make_docx(40), "note.docx", FileType.DOCX, 9.0)
        assert analysis.total_pages == 1
        assert analysis.total_price == pytest.approx(9.0)

    def test_unreadable_file_raises(self):
        with pytest.raises(ParseFailure):
            run_fast_pass(b"%PDF-garbage", "bad.pdf", FileType.PDF, 9.0)


class TestDeepPass:
    """Test suite for run_deep_pass."""

    def test_pdf_pages_classified_by_word_count(self, make_pdf):
        analysis, char_count = run_deep_pass(make_pdf([300, 150, 30, 0]), "a.pdf", FileType.PDF, 9.0)
        assert analysis.phase == AnalysisPhase.DEEP
        assert [page.density for page in analysis.pages] == [
            Density.HIGH, Density.MEDIUM, Density.LOW, Density.BLANK,
        ]
        assert [page.word_count for page in analysis.pages] == [300, 150, 30, 0]
        assert analysis.total_price == pytest.approx(9.0 + 4.5 + 2.25)
        assert char_count == 4 * (300 + 150 + 30)
        assert analysis.is_image is False

    def test_image_page_is_scanned(self, make_pdf):
        analysis, _ = run_deep_pass(make_pdf([200, 0], image_pages=(1,)), "a.pdf", FileType.PDF, 9.0)
        assert analysis.pages[1].density == Density.SCANNED
        assert analysis.pages[1].price == pytest.approx(9.0)

    def test_docx_pages_estimated_from_words(self, make_docx):
        analysis, _ = run_deep_pass(make_docx(600), "letter.docx", FileType.DOCX, 9.0)
        assert analysis.total_pages == 3
        assert all(page.word_count == 200 for page in analysis.pages)
        assert all(page.density == Density.MEDIUM for page in analysis.pages)
        assert analysis.file_type == FileType.DOCX

    def test_empty_docx_is_one_blank_page(self, make_docx):
        analysis, _ = run_deep_pass(make_docx(0), "empty.docx", FileType.DOCX, 9.0)
        assert analysis.total_pages == 1
        assert analysis.pages[0].density == Density.BLANK

    def test_source_type_reported(self, make_pdf):
        """Test that converted images keep their image file type."""
        analysis, _ = run_deep_pass(
            make_pdf([0]), "photo.jpg", FileType.PDF, 9.0, source_type=FileType.IMAGE
        )
        assert analysis.file_type == FileType.IMAGE
        assert analysis.is_image is True

    def test_all_scanned_is_full_price(self, make_pdf):
        analysis, _ = run_deep_pass(make_pdf([0, 0]), "a.pdf", FileType.PDF, 9.0)
        assert analysis.total_price == 0.0
        scanned = all_scanned(analysis)
        assert all(page.density == Density.SCANNED for page in scanned.pages)
        assert scanned.total_price == pytest.approx(18.0)
        # The original is untouched
        assert analysis.pages[0].density == Density.BLANK


class TestHandleRequest:
    """Test suite for the worker entry point."""

    def test_ping(self):
        response = handle_request(AnalysisRequest(request_id="p", kind=RequestKind.PING))
        assert response.kind == ResponseKind.PONG
        assert response.request_id == "p"

    def test_fast_pass_response(self, make_pdf):
        request = AnalysisRequest(
            request_id="r1",
            kind=RequestKind.FAST_PASS,
            data=make_pdf([5, 5]),
            file_name="a.pdf",
            file_type=FileType.PDF,
            base_price=9.0,
        )
        response = handle_request(request)
        assert response.kind == ResponseKind.FAST_PASS_DONE
        assert response.request_id == "r1"
        assert response.result.total_pages == 2

    def test_deep_pass_response_carries_char_count(self, make_pdf):
        request = AnalysisRequest(
            request_id="r2",
            kind=RequestKind.DEEP_PASS,
            data=make_pdf([5]),
            file_name="a.pdf",
            file_type=FileType.PDF,
            base_price=9.0,
        )
        response = handle_request(request)
        assert response.kind == ResponseKind.DEEP_PASS_DONE
        assert response.char_count == 20

    def test_errors_become_error_responses(self):
        request = AnalysisRequest(
            request_id="r3",
            kind=RequestKind.FAST_PASS,
            data=b"nope",
            file_name="bad.pdf",
            file_type=FileType.PDF,
            base_price=9.0,
        )
        response = handle_request(request)
        assert response.kind == ResponseKind.ERROR
        assert response.error_code == "PARSE_FAILURE"
        assert response.request_id == "r3"


class TestFastPassUpperBound:
    """The fast estimate is never below the final deep price."""

    @pytest.mark.parametrize("word_counts,image_pages", [
        ([300, 150, 30, 0], ()),
        ([0, 0], ()),
        ([400, 0], (1,)),
    ])
    def test_pdf(self, make_pdf, word_counts, image_pages):
        data = make_pdf(word_counts, image_pages=image_pages)
        fast = run_fast_pass(data, "a.pdf", FileType.PDF, 9.0)
        deep, _ = run_deep_pass(data, "a.pdf", FileType.PDF, 9.0)
        assert fast.total_pages == deep.total_pages
        assert fast.total_price >= deep.total_price

    @pytest.mark.parametrize("word_count", [0, 40, 250, 251, 2000])
    def test_docx(self, make_docx, word_count):
        data = make_docx(word_count)
        fast = run_fast_pass(data, "letter.docx", FileType.DOCX, 9.0)
        deep, _ = run_deep_pass(data, "letter.docx", FileType.DOCX, 9.0)
        assert fast.total_pages == deep.total_pages
        assert fast.total_price >= deep.total_price

    def test_image(self, png_bytes):
        fast = run_fast_pass(png_bytes, "scan.png", FileType.IMAGE, 9.0)
        deep, _ = run_deep_pass(png_bytes, "scan.png", FileType.IMAGE, 9.0)
        assert fast.total_pages == deep.total_pages
        assert fast.total_price >= deep.total_price


class TestDocxExtractionFailure:
    """DOCX files whose text cannot be read."""

    @pytest.fixture(autouse=True)
    def broken_docx_text(self, monkeypatch):
        def broken_text(document):
            raise ValueError("bad run properties")

        monkeypatch.setattr(PageReader, "_docx_text", staticmethod(broken_text))

    def test_fast_pass_keeps_structural_count(self, make_docx):
        analysis = run_fast_pass(make_docx(900), "letter.docx", FileType.DOCX, 9.0)
        assert analysis.total_pages == 1
        assert analysis.pages[0].density == Density.HIGH

    def test_deep_pass_reports_extraction_failure(self, make_docx):
        request = AnalysisRequest(
            request_id="r4",
            kind=RequestKind.DEEP_PASS,
            data=make_docx(900),
            file_name="letter.docx",
            file_type=FileType.DOCX,
            base_price=9.0,
        )
        response = handle_request(request)
        assert response.kind == ResponseKind.ERROR
        assert response.error_code == "EXTRACTION_FAILURE"
