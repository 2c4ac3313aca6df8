"""
Fast-pass and deep-pass page analysis.

Everything in this module is synchronous and picklable: ``handle_request`` is
the entry point executed inside pool workers and, unchanged, by the inline
fallback analyzer.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
import logging
import math
from typing import Optional

from config import DOCX_WORDS_PER_PAGE
from models.analysis import AnalysisPhase, Density, DocumentAnalysis, FileType
from services.density_classifier import DensityClassifier, DensityThresholds
from services.errors import AnalysisError, ExtractionFailure
from services.page_reader import PageReader

logger = logging.getLogger(__name__)


class RequestKind(str, Enum):
    FAST_PASS = "fast_pass"
    DEEP_PASS = "deep_pass"
    PING = "ping"


class ResponseKind(str, Enum):
    FAST_PASS_DONE = "fast_pass_done"
    DEEP_PASS_DONE = "deep_pass_done"
    PONG = "pong"
    ERROR = "error"


@dataclass(frozen=True)
class AnalysisRequest:
    """Message sent to a worker. ``request_id`` correlates the response."""
    request_id: str
    kind: RequestKind
    data: bytes = b""
    file_name: str = ""
    file_type: FileType = FileType.UNKNOWN
    base_price: float = 0.0
    # Type reported on the result; differs from file_type for converted images
    source_type: Optional[FileType] = None
    thresholds: DensityThresholds = field(default_factory=DensityThresholds)
    docx_words_per_page: int = DOCX_WORDS_PER_PAGE


@dataclass(frozen=True)
class AnalysisResponse:
    """Message returned by a worker."""
    request_id: str
    kind: ResponseKind
    result: Optional[DocumentAnalysis] = None
    char_count: int = 0
    error_code: Optional[str] = None
    message: Optional[str] = None


# Worst-case density used by the fast pass, per file type
WORST_CASE_DENSITY = {
    FileType.PDF: Density.HIGH,
    FileType.DOCX: Density.HIGH,
    FileType.IMAGE: Density.SCANNED,
    FileType.UNKNOWN: Density.HIGH,
}


def run_fast_pass(
    data: bytes,
    file_name: str,
    file_type: FileType,
    base_price: float,
    reader: PageReader = None,
    docx_words_per_page: int = DOCX_WORDS_PER_PAGE,
) -> DocumentAnalysis:
    """
    Structure-only pass: every page at the worst-case density for its file type.

    DOCX has no page tree, so its page count is estimated from the word count
    exactly as the deep pass does.

    Raises:
        ParseFailure: If the page count cannot be determined
    """
    reader = reader or PageReader()
    page_count = reader.count_pages(data, file_type)
    if file_type == FileType.DOCX:
        try:
            text = reader.read_pages(data, file_type).page_texts[0] or ""
            page_count = docx_page_count(len(text.split()), docx_words_per_page)
        except ExtractionFailure as e:
            logger.warning(f"Keeping structural page count for {file_name}: {e.message}")
    density = WORST_CASE_DENSITY[file_type]

    pages = [
        DensityClassifier.forced_page(number, density, base_price)
        for number in range(1, page_count + 1)
    ]
    return DocumentAnalysis(
        file_name=file_name,
        pages=pages,
        is_image=file_type == FileType.IMAGE,
        phase=AnalysisPhase.FAST,
        file_type=file_type,
    )


def run_deep_pass(
    data: bytes,
    file_name: str,
    file_type: FileType,
    base_price: float,
    classifier: DensityClassifier = None,
    reader: PageReader = None,
    source_type: Optional[FileType] = None,
    docx_words_per_page: int = DOCX_WORDS_PER_PAGE,
):
    """
    Full pass: extract text per page and classify every page.

    Returns:
        Tuple of (DocumentAnalysis, non-whitespace character count)

    Raises:
        ParseFailure: If no page tree can be found
    """
    classifier = classifier or DensityClassifier()
    reader = reader or PageReader()
    source_type = source_type or file_type

    read_result = reader.read_pages(data, file_type)

    if file_type == FileType.DOCX:
        pages = _docx_pages(read_result.page_texts[0] or "", base_price, classifier, docx_words_per_page)
    else:
        pages = []
        for number, text in enumerate(read_result.page_texts, start=1):
            recoverable = text is not None
            word_count = len(text.split()) if recoverable else 0
            pages.append(classifier.make_page(number, word_count, recoverable, base_price))

    is_image = source_type == FileType.IMAGE or all(text is None for text in read_result.page_texts)
    analysis = DocumentAnalysis(
        file_name=file_name,
        pages=pages,
        is_image=is_image,
        phase=AnalysisPhase.DEEP,
        file_type=source_type,
    )
    logger.debug(
        f"Deep pass {file_name}: {analysis.total_pages} pages, {read_result.char_count} chars"
    )
    return analysis, read_result.char_count


def _docx_pages(text: str, base_price: float, classifier: DensityClassifier, words_per_page: int):
    """DOCX has no physical pages; estimate them from the word count."""
    word_count = len(text.split())
    page_count = docx_page_count(word_count, words_per_page)
    words_per_estimated_page = round(word_count / page_count)
    return [
        classifier.make_page(number, words_per_estimated_page, True, base_price)
        for number in range(1, page_count + 1)
    ]


def docx_page_count(word_count: int, words_per_page: int) -> int:
    return max(1, math.ceil(word_count / words_per_page))


def all_scanned(analysis: DocumentAnalysis) -> DocumentAnalysis:
    """Fail-safe copy of an analysis with every page at full scanned price."""
    pages = [
        DensityClassifier.forced_page(
            page.page_number, Density.SCANNED, page.base_price, word_count=page.word_count
        )
        for page in analysis.pages
    ]
    return replace(analysis, pages=pages, is_image=True)


def handle_request(request: AnalysisRequest) -> AnalysisResponse:
    """Worker entry point. Never raises: failures become error responses."""
    try:
        if request.kind == RequestKind.PING:
            return AnalysisResponse(request_id=request.request_id, kind=ResponseKind.PONG)

        if request.kind == RequestKind.FAST_PASS:
            result = run_fast_pass(
                request.data, request.file_name, request.file_type, request.base_price,
                docx_words_per_page=request.docx_words_per_page,
            )
            return AnalysisResponse(
                request_id=request.request_id,
                kind=ResponseKind.FAST_PASS_DONE,
                result=result,
            )

        if request.kind == RequestKind.DEEP_PASS:
            result, char_count = run_deep_pass(
                request.data,
                request.file_name,
                request.file_type,
                request.base_price,
                classifier=DensityClassifier(request.thresholds),
                source_type=request.source_type,
                docx_words_per_page=request.docx_words_per_page,
            )
            return AnalysisResponse(
                request_id=request.request_id,
                kind=ResponseKind.DEEP_PASS_DONE,
                result=result,
                char_count=char_count,
            )

        raise AnalysisError(f"Unknown request kind: {request.kind}")

    except AnalysisError as e:
        return AnalysisResponse(
            request_id=request.request_id,
            kind=ResponseKind.ERROR,
            error_code=e.code,
            message=e.message,
        )
    except Exception as e:
        logger.error(f"Worker failed on {request.file_name}: {str(e)}", exc_info=True)
        return AnalysisResponse(
            request_id=request.request_id,
            kind=ResponseKind.ERROR,
            error_code=AnalysisError.code,
            message=str(e) or type(e).__name__,
        )
