"""Data models for the Density Pricing Engine."""
from .analysis import (
    Density,
    FileType,
    AnalysisPhase,
    AnalysisStatus,
    UploadedFile,
    PageAnalysis,
    DocumentAnalysis,
    PageReadResult,
)
from .batch import BatchProgress, FileOutcome
from .pricing import (
    UrgencyTier,
    PaymentPlan,
    ServiceType,
    PricingSettings,
    OrderDocument,
    DocumentPriceLine,
    PriceBreakdown,
)

__all__ = [
    "Density",
    "FileType",
    "AnalysisPhase",
    "AnalysisStatus",
    "UploadedFile",
    "PageAnalysis",
    "DocumentAnalysis",
    "PageReadResult",
    "BatchProgress",
    "FileOutcome",
    "UrgencyTier",
    "PaymentPlan",
    "ServiceType",
    "PricingSettings",
    "OrderDocument",
    "DocumentPriceLine",
    "PriceBreakdown",
]
