"""
Engine facade: fast pass for instant estimates, batched deep passes for the
final per-page breakdown, and pricing over the resulting documents.
"""

import asyncio
from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Optional, Sequence

from models.analysis import AnalysisStatus, Density, DocumentAnalysis, UploadedFile
from models.batch import BatchProgress
from models.pricing import OrderDocument, PaymentPlan, PriceBreakdown, PricingSettings, ServiceType, UrgencyTier
from services.batch_scheduler import BatchRun, BatchScheduler
from services.density_classifier import DensityClassifier
from services.document_analyzer import DocumentAnalyzer
from services.errors import AnalysisError, ReconciliationMismatch
from services.pricing_calculator import calculate_price
from services.reconciliation import reconcile

logger = logging.getLogger(__name__)


@dataclass
class DocumentState:
    """Current view of one uploaded document, indexed by its upload position."""
    index: int
    file: UploadedFile
    analysis: Optional[DocumentAnalysis] = None
    status: AnalysisStatus = AnalysisStatus.PENDING
    error: Optional[str] = None
    warning: Optional[str] = None
    notarized: bool = False
    handwritten: bool = False
    selected: bool = True

    def to_order_document(self) -> OrderDocument:
        return OrderDocument(
            file_name=self.file.file_name,
            analysis=self.analysis,
            page_count=self.analysis.total_pages if self.analysis else 1,
            notarized=self.notarized,
            handwritten=self.handwritten,
            selected=self.selected,
            status=self.status,
        )


UpdateCallback = Callable[[DocumentState], None]


class PricingEngine:
    """Drives analysis of an upload set and prices the result."""

    def __init__(
        self,
        analyzer: DocumentAnalyzer,
        scheduler: BatchScheduler = None,
        settings: PricingSettings = None,
    ):
        self.analyzer = analyzer
        self.scheduler = scheduler or BatchScheduler(analyzer.deep_pass)
        self.settings = settings or PricingSettings()
        self.documents: Dict[int, DocumentState] = {}

    async def analyze_files(
        self,
        files: Sequence[UploadedFile],
        on_update: Optional[UpdateCallback] = None,
        run: Optional[BatchRun] = None,
    ) -> Dict[int, DocumentState]:
        """
        Analyze newly uploaded files.

        Every file first gets a fast-pass estimate (``on_update`` fires once per
        file), then the deep passes run through the batch scheduler and each
        result replaces its fast estimate as it lands.

        Returns:
            States of the analysed files, keyed by index
        """
        offset = max(self.documents, default=-1) + 1
        states = {
            offset + position: DocumentState(index=offset + position, file=file)
            for position, file in enumerate(files)
        }
        self.documents.update(states)

        fast_results = await asyncio.gather(
            *(self.analyzer.fast_pass(state.file, self.settings.base_price) for state in states.values()),
            return_exceptions=True,
        )

        for state, result in zip(states.values(), fast_results):
            if isinstance(result, AnalysisError):
                self._mark_error(state, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                state.analysis = reconcile(state.analysis, result)
            self._notify(on_update, state)

        deep_inputs = [
            (index, state.file)
            for index, state in states.items()
            if state.status != AnalysisStatus.ERROR
        ]

        def on_progress(progress: BatchProgress) -> None:
            state = self.documents.get(progress.file_index)
            if state is None:
                # Removed while its deep pass was running
                return
            if progress.status == AnalysisStatus.ERROR:
                state.status = AnalysisStatus.ERROR
                state.error = progress.error
            else:
                self._apply_deep(state, progress.analysis)
            self._notify(on_update, state)

        await self.scheduler.run(deep_inputs, self.settings.base_price, on_progress, run)
        return states

    def _apply_deep(self, state: DocumentState, analysis: DocumentAnalysis) -> None:
        try:
            state.analysis = reconcile(state.analysis, analysis)
        except ReconciliationMismatch as e:
            state.analysis = e.analysis
            state.warning = e.message
        state.status = AnalysisStatus.DONE
        state.error = None

    @staticmethod
    def _mark_error(state: DocumentState, error: AnalysisError) -> None:
        logger.warning(
            f"{state.file.file_name} cannot be analysed: {error.message}",
            extra={"file_name": state.file.file_name, "error_code": error.code},
        )
        state.status = AnalysisStatus.ERROR
        state.error = error.message
        state.analysis = None

    @staticmethod
    def _notify(on_update: Optional[UpdateCallback], state: DocumentState) -> None:
        if on_update is not None:
            on_update(state)

    def _analysis(self, index: int) -> DocumentAnalysis:
        """
        Analysis of a document, for operator page edits.

        Raises:
            KeyError: If no document has this index
            AnalysisError: If the document has no analysis (failed or still pending)
        """
        state = self.documents[index]
        if state.analysis is None:
            raise AnalysisError(
                f"Document {index} ({state.file.file_name}) has no analysis to edit",
                {"file_index": index, "status": state.status.value, "error": state.error},
            )
        return state.analysis

    def remove(self, index: int) -> None:
        """Drop a document and its analysis from the order."""
        self.documents.pop(index, None)

    def set_page_included(self, index: int, page_number: int, included: bool) -> None:
        self._analysis(index).set_page_included(page_number, included)

    def override_density(self, index: int, page_number: int, density: Density) -> None:
        page = self._analysis(index).page(page_number)
        DensityClassifier.override(page, density)

    def quote(
        self,
        urgency: str = UrgencyTier.STANDARD,
        payment_plan: str = PaymentPlan.UPFRONT,
        service_type: str = ServiceType.TRANSLATION,
    ) -> PriceBreakdown:
        """Price the current documents in upload order."""
        documents: List[OrderDocument] = [
            self.documents[index].to_order_document() for index in sorted(self.documents)
        ]
        return calculate_price(documents, self.settings, urgency, payment_plan, service_type)
