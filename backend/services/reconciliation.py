"""Replacing a document's analysis while keeping manual page overrides."""
import logging
from typing import Optional

from models.analysis import AnalysisPhase, DocumentAnalysis
from services.density_classifier import DensityClassifier
from services.errors import ReconciliationMismatch

logger = logging.getLogger(__name__)


def reconcile(current: Optional[DocumentAnalysis], incoming: DocumentAnalysis) -> DocumentAnalysis:
    """
    Replace ``current`` with ``incoming`` wholesale.

    Manual overrides (excluded pages, reclassified densities) on ``current``
    are re-applied by page number when both analyses have the same page count.
    A fast result never replaces a deep one.

    Returns:
        The analysis the caller should keep

    Raises:
        ReconciliationMismatch: Page count changed while overrides existed.
            The replacement, without overrides, is in ``error.analysis``.
    """
    if current is None:
        return incoming

    if current.phase == AnalysisPhase.DEEP and incoming.phase == AnalysisPhase.FAST:
        logger.debug(
            f"Ignoring fast result for {incoming.file_name}: deep result already applied",
            extra={"file_name": incoming.file_name},
        )
        return current

    if not current.has_overrides():
        return incoming

    if current.total_pages != incoming.total_pages:
        logger.warning(
            f"Page count of {incoming.file_name} changed from {current.total_pages} "
            f"to {incoming.total_pages}, discarding manual overrides",
            extra={"file_name": incoming.file_name, "error_code": ReconciliationMismatch.code},
        )
        raise ReconciliationMismatch(
            f"{incoming.file_name}: page count changed from {current.total_pages} "
            f"to {incoming.total_pages}; manual page changes were discarded",
            analysis=incoming,
            details={"previous_pages": current.total_pages, "new_pages": incoming.total_pages},
        )

    for previous in current.pages:
        page = incoming.page(previous.page_number)
        if previous.density_overridden:
            DensityClassifier.override(page, previous.density)
        page.included = previous.included

    return incoming
