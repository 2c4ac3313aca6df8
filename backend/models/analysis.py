"""Document analysis data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Density(str, Enum):
    """Density tier of a single page."""
    BLANK = "blank"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    SCANNED = "scanned"


class FileType(str, Enum):
    """Kind of uploaded file."""
    PDF = "pdf"
    IMAGE = "image"
    DOCX = "docx"
    UNKNOWN = "unknown"


class AnalysisPhase(str, Enum):
    """Which pass produced an analysis snapshot."""
    FAST = "fast"
    DEEP = "deep"


class AnalysisStatus(str, Enum):
    """Analysis state of one file in an order."""
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


@dataclass
class UploadedFile:
    """Opaque file blob handed over by the ordering application."""
    file_name: str
    data: bytes
    mime_type: Optional[str] = None


@dataclass
class PageAnalysis:
    """
    One physical page of one document.

    ``price`` is derived from ``base_price`` and ``fraction`` on every access.
    ``density`` and ``fraction`` are written together by the DensityClassifier.
    """
    page_number: int  # 1-based
    word_count: int
    density: Density
    fraction: float
    base_price: float
    included: bool = True
    density_overridden: bool = False

    @property
    def price(self) -> float:
        return self.base_price * self.fraction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_number": self.page_number,
            "word_count": self.word_count,
            "density": self.density.value,
            "fraction": self.fraction,
            "price": self.price,
            "included": self.included,
            "density_overridden": self.density_overridden,
        }


@dataclass
class DocumentAnalysis:
    """Analysis of one uploaded file."""
    file_name: str
    pages: List[PageAnalysis]
    is_image: bool
    phase: AnalysisPhase
    file_type: FileType
    ocr_applied: bool = False

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def total_price(self) -> float:
        """Sum of the prices of included pages."""
        return sum(page.price for page in self.pages if page.included)

    @property
    def original_total_price(self) -> float:
        """Sum of all page prices, ignoring exclusions."""
        return sum(page.price for page in self.pages)

    @property
    def savings(self) -> float:
        return self.original_total_price - self.total_price

    def page(self, page_number: int) -> PageAnalysis:
        """
        Get a page by its 1-based number.

        Raises:
            KeyError: If the document has no such page
        """
        if 1 <= page_number <= len(self.pages):
            page = self.pages[page_number - 1]
            if page.page_number == page_number:
                return page
        for page in self.pages:
            if page.page_number == page_number:
                return page
        raise KeyError(f"{self.file_name} has no page {page_number}")

    def set_page_included(self, page_number: int, included: bool) -> None:
        """Include or exclude a page from billing without touching its density data."""
        self.page(page_number).included = included

    def has_overrides(self) -> bool:
        """Whether a human excluded a page or reclassified its density."""
        return any(not page.included or page.density_overridden for page in self.pages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "total_pages": self.total_pages,
            "pages": [page.to_dict() for page in self.pages],
            "total_price": self.total_price,
            "original_total_price": self.original_total_price,
            "is_image": self.is_image,
            "phase": self.phase.value,
            "file_type": self.file_type.value,
            "ocr_applied": self.ocr_applied,
        }


@dataclass
class PageReadResult:
    """Structural page count plus per-page text (None where text is not recoverable)."""
    page_count: int
    page_texts: List[Optional[str]] = field(default_factory=list)

    @property
    def char_count(self) -> int:
        """Non-whitespace characters across every recovered page."""
        return sum(len("".join(text.split())) for text in self.page_texts if text)
