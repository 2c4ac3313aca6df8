"""Bounded-concurrency batch runner for deep-pass analyses."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple

from config import BATCH_CONCURRENCY
from models.analysis import AnalysisStatus, DocumentAnalysis, UploadedFile
from models.batch import BatchProgress, FileOutcome
from services.errors import AnalysisError

logger = logging.getLogger(__name__)

Analyze = Callable[[UploadedFile, float], Awaitable[DocumentAnalysis]]
ProgressCallback = Callable[[BatchProgress], None]


class BatchRun:
    """Handle of one batch run. ``cancel()`` stops progress delivery."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class BatchScheduler:
    """
    Runs many analyses in consecutive chunks of ``concurrency`` files.

    Each chunk is awaited as a whole before the next one starts, so no more
    than ``concurrency`` analyses are ever in flight.
    """

    def __init__(self, analyze: Analyze, concurrency: int = BATCH_CONCURRENCY):
        """
        Initialize the scheduler.

        Args:
            analyze: Coroutine function ``(file, base_price) -> DocumentAnalysis``,
                normally ``DocumentAnalyzer.deep_pass``
            concurrency: Maximum analyses in flight
        """
        if concurrency < 1:
            raise ValueError("Batch concurrency must be at least 1")
        self.analyze = analyze
        self.concurrency = concurrency

    async def run(
        self,
        files: Sequence[Tuple[int, UploadedFile]],
        base_price: float,
        on_progress: Optional[ProgressCallback] = None,
        run: Optional[BatchRun] = None,
    ) -> Dict[int, FileOutcome]:
        """
        Analyze ``(index, file)`` pairs and report each completion.

        Progress is delivered synchronously in completion order. After
        ``run.cancel()`` no further callbacks are made: the current chunk is
        drained and no new chunk starts.

        Returns:
            Outcomes keyed by the caller's file index
        """
        run = run or BatchRun()
        total = len(files)
        completed = 0
        outcomes: Dict[int, FileOutcome] = {}

        logger.info(f"Starting batch of {total} files (concurrency={self.concurrency})")

        for start in range(0, total, self.concurrency):
            if run.cancelled:
                logger.info(f"Batch cancelled after {completed}/{total} files")
                break

            chunk = files[start:start + self.concurrency]
            tasks = [
                asyncio.ensure_future(self._analyze_one(index, file, base_price))
                for index, file in chunk
            ]

            for next_done in asyncio.as_completed(tasks):
                outcome = await next_done
                outcomes[outcome.file_index] = outcome
                completed += 1

                if run.cancelled or on_progress is None:
                    continue

                on_progress(BatchProgress(
                    file_index=outcome.file_index,
                    file_name=outcome.file_name,
                    analysis=outcome.analysis,
                    completed=completed,
                    total=total,
                    status=outcome.status,
                    error=outcome.error,
                ))

        failed = sum(1 for outcome in outcomes.values() if outcome.status == AnalysisStatus.ERROR)
        logger.info(f"Batch finished: {completed}/{total} files, {failed} failed")
        return outcomes

    async def _analyze_one(self, index: int, file: UploadedFile, base_price: float) -> FileOutcome:
        try:
            analysis = await self.analyze(file, base_price)
            return FileOutcome(file_index=index, file_name=file.file_name, analysis=analysis)
        except AnalysisError as e:
            logger.warning(
                f"Analysis failed for {file.file_name}: {e.message}",
                extra={"file_name": file.file_name, "file_index": index, "error_code": e.code},
            )
            return FileOutcome(
                file_index=index,
                file_name=file.file_name,
                error=e.message,
                error_code=e.code,
            )
        except Exception as e:
            logger.error(
                f"Unexpected error analysing {file.file_name}: {str(e)}",
                exc_info=True,
                extra={"file_name": file.file_name, "file_index": index},
            )
            return FileOutcome(
                file_index=index,
                file_name=file.file_name,
                error=str(e) or type(e).__name__,
                error_code=AnalysisError.code,
            )
