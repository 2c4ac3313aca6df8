"""Error taxonomy of the analysis and pricing engine."""
from typing import Any, Dict, Optional


class AnalysisError(Exception):
    """Base error with structured error information."""

    code = "ANALYSIS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UnsupportedFileType(AnalysisError):
    """File type is not one the engine can price. Rejected before any pass runs."""
    code = "UNSUPPORTED_FILE_TYPE"


class ParseFailure(AnalysisError):
    """The binary reader could not find a page tree."""
    code = "PARSE_FAILURE"


class ExtractionFailure(AnalysisError):
    """Text extraction failed on an otherwise valid page structure."""
    code = "EXTRACTION_FAILURE"


class OcrFailure(AnalysisError):
    """The OCR escalation (or image-to-PDF conversion) failed."""
    code = "OCR_FAILURE"


class WorkerUnavailable(AnalysisError):
    """No worker could take the request."""
    code = "WORKER_UNAVAILABLE"


class ReconciliationMismatch(AnalysisError):
    """
    Deep pass changed the page count of a document that had manual overrides.

    The replacement analysis (with overrides discarded) is carried in ``analysis``.
    """
    code = "RECONCILIATION_MISMATCH"

    def __init__(self, message: str, analysis=None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.analysis = analysis


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        AnalysisError,
        UnsupportedFileType,
        ParseFailure,
        ExtractionFailure,
        OcrFailure,
        WorkerUnavailable,
    )
}


def error_from_code(code: str, message: str) -> AnalysisError:
    """Rebuild a typed error from a worker error response."""
    return ERRORS_BY_CODE.get(code, AnalysisError)(message)
