"""Pricing data models."""
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from config import (
    BASE_PRICE,
    URGENCY_RATE,
    NOTARY_FEE,
    MIN_DOC_FLOOR,
    HANDWRITTEN_MULTIPLIER,
    UPFRONT_DISCOUNT_RATE,
)
from .analysis import AnalysisStatus, DocumentAnalysis

logger = logging.getLogger(__name__)


class UrgencyTier(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    FLASH = "flash"


class PaymentPlan(str, Enum):
    UPFRONT = "upfront"
    UPFRONT_DISCOUNT = "upfront_discount"
    SPLIT = "split"


class ServiceType(str, Enum):
    TRANSLATION = "translation"
    NOTARIZATION = "notarization"


@dataclass
class PricingSettings:
    """Global pricing settings supplied by the configuration collaborator."""
    base_price: float = BASE_PRICE
    urgency_rate: float = URGENCY_RATE
    notary_fee: float = NOTARY_FEE
    min_doc_floor: float = MIN_DOC_FLOOR
    handwritten_multiplier: float = HANDWRITTEN_MULTIPLIER
    upfront_discount_rate: float = UPFRONT_DISCOUNT_RATE

    # Settings keys as stored by the ordering application
    _KEY_ALIASES = {
        "basePrice": "base_price",
        "urgencyRate": "urgency_rate",
        "notaryFee": "notary_fee",
        "minDocFloor": "min_doc_floor",
    }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PricingSettings":
        """
        Build settings from a ``{basePrice, urgencyRate, notaryFee}`` style mapping.

        Unknown keys are ignored and unparsable values keep their default.
        """
        settings = cls()
        for key, raw in values.items():
            name = cls._KEY_ALIASES.get(key, key)
            if name.startswith("_") or not hasattr(settings, name):
                continue
            try:
                setattr(settings, name, float(raw))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid pricing setting {key}={raw!r}")
        return settings

    def urgency_multiplier(self, tier: str) -> float:
        """Price multiplier for an urgency tier; unknown tiers fall back to 1.0."""
        multipliers = {
            UrgencyTier.STANDARD.value: 1.0,
            UrgencyTier.URGENT.value: 1.0 + self.urgency_rate,
            UrgencyTier.FLASH.value: 1.0 + self.urgency_rate * 2,
        }
        key = tier.value if isinstance(tier, UrgencyTier) else str(tier)
        return multipliers.get(key, 1.0)


@dataclass
class OrderDocument:
    """One document of an order as seen by the pricing calculator."""
    file_name: str
    analysis: Optional[DocumentAnalysis] = None
    page_count: int = 1  # used when no analysis exists
    notarized: bool = False
    handwritten: bool = False
    selected: bool = True
    status: AnalysisStatus = AnalysisStatus.DONE


@dataclass
class DocumentPriceLine:
    """Per-document addends of the receipt."""
    file_name: str
    page_count: int
    pages_price: float
    handwritten_surcharge: float
    minimum_adjustment: float
    price: float
    notary_fee: float


@dataclass
class PriceBreakdown:
    """Itemized, auditable order total."""
    lines: List[DocumentPriceLine] = field(default_factory=list)
    base_price: float = 0.0
    minimum_adjustment: float = 0.0
    min_order_applied: bool = False
    subtotal: float = 0.0
    urgency_multiplier: float = 1.0
    urgency_fee: float = 0.0
    with_urgency: float = 0.0
    notary_fee: float = 0.0
    discount_applied: float = 0.0
    total: float = 0.0
    total_documents: int = 0
    total_pages: int = 0
    excluded_documents: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
