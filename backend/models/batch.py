"""Batch run data models."""
from dataclasses import dataclass
from typing import Optional

from .analysis import AnalysisStatus, DocumentAnalysis


@dataclass
class BatchProgress:
    """Emitted once per completed file during a batch run."""
    file_index: int
    file_name: str
    analysis: Optional[DocumentAnalysis]
    completed: int
    total: int
    status: AnalysisStatus = AnalysisStatus.DONE
    error: Optional[str] = None


@dataclass
class FileOutcome:
    """Final result for one file of a batch, keyed by its original index."""
    file_index: int
    file_name: str
    analysis: Optional[DocumentAnalysis] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def status(self) -> AnalysisStatus:
        return AnalysisStatus.ERROR if self.error else AnalysisStatus.DONE
