"""
Density Classifier for page billing.

Maps the word count of a page to a density tier and its billing fraction.
``DENSITY_FRACTIONS`` is the single fraction table of the engine; pricing code
reads fractions from classified pages and never re-declares it.
"""

from dataclasses import dataclass
import logging

from config import WORD_THRESHOLD_MEDIUM, WORD_THRESHOLD_HIGH
from models.analysis import Density, PageAnalysis

logger = logging.getLogger(__name__)


DENSITY_FRACTIONS = {
    Density.BLANK: 0.00,
    Density.LOW: 0.25,
    Density.MEDIUM: 0.50,
    Density.HIGH: 1.00,
    Density.SCANNED: 1.00,
}


@dataclass(frozen=True)
class DensityThresholds:
    """
    Word-count boundaries between tiers.

    Attributes:
        medium: Pages with fewer words than this are ``low``
        high: Pages with more words than this are ``high``
    """
    medium: int = WORD_THRESHOLD_MEDIUM
    high: int = WORD_THRESHOLD_HIGH

    def __post_init__(self):
        if not 0 < self.medium <= self.high:
            raise ValueError(
                f"Invalid density thresholds: medium={self.medium}, high={self.high}"
            )


@dataclass(frozen=True)
class PageClassification:
    """Result of classifying one page."""
    density: Density
    fraction: float
    reasoning: str


class DensityClassifier:
    """Deterministic page classifier driven by configurable word thresholds."""

    def __init__(self, thresholds: DensityThresholds = None):
        self.thresholds = thresholds or DensityThresholds()

    def classify(self, word_count: int, text_recoverable: bool) -> PageClassification:
        """
        Classify a page.

        Rules, in order:
        1. No recoverable text → scanned (full price, needs manual formatting)
        2. Zero words → blank
        3. Fewer than ``medium`` words → low
        4. Up to ``high`` words → medium
        5. Otherwise → high

        Args:
            word_count: Words extracted from the page
            text_recoverable: False when the page text could not be extracted

        Returns:
            PageClassification with density, fraction and reasoning
        """
        if not text_recoverable:
            return self._result(Density.SCANNED, "no recoverable text")

        if word_count < 0:
            logger.warning(f"Negative word count {word_count}, treating as 0")
            word_count = 0

        if word_count == 0:
            return self._result(Density.BLANK, "no words on page")
        if word_count < self.thresholds.medium:
            return self._result(
                Density.LOW, f"{word_count} words < {self.thresholds.medium}"
            )
        if word_count <= self.thresholds.high:
            return self._result(
                Density.MEDIUM, f"{word_count} words <= {self.thresholds.high}"
            )
        return self._result(Density.HIGH, f"{word_count} words > {self.thresholds.high}")

    def make_page(
        self,
        page_number: int,
        word_count: int,
        text_recoverable: bool,
        base_price: float,
    ) -> PageAnalysis:
        """Classify a page and build its PageAnalysis."""
        classification = self.classify(word_count, text_recoverable)
        return PageAnalysis(
            page_number=page_number,
            word_count=max(word_count, 0),
            density=classification.density,
            fraction=classification.fraction,
            base_price=base_price,
        )

    @staticmethod
    def forced_page(page_number: int, density: Density, base_price: float, word_count: int = 0) -> PageAnalysis:
        """Build a page with a fixed density (worst-case and fallback paths)."""
        return PageAnalysis(
            page_number=page_number,
            word_count=word_count,
            density=density,
            fraction=DENSITY_FRACTIONS[density],
            base_price=base_price,
        )

    @staticmethod
    def override(page: PageAnalysis, density: Density) -> PageAnalysis:
        """Manual reclassification by an operator. Density and fraction change together."""
        density = Density(density)
        page.density = density
        page.fraction = DENSITY_FRACTIONS[density]
        page.density_overridden = True
        logger.info(f"Page {page.page_number} reclassified as {density.value}")
        return page

    @staticmethod
    def _result(density: Density, reasoning: str) -> PageClassification:
        return PageClassification(
            density=density,
            fraction=DENSITY_FRACTIONS[density],
            reasoning=reasoning,
        )
