"""Services for the Density Pricing Engine."""
from .errors import (
    AnalysisError,
    UnsupportedFileType,
    ParseFailure,
    ExtractionFailure,
    OcrFailure,
    WorkerUnavailable,
    ReconciliationMismatch,
)
from .page_reader import PageReader, sniff_file_type
from .density_classifier import DensityClassifier, DensityThresholds, PageClassification, DENSITY_FRACTIONS
from .inline_analyzer import InlineAnalyzer
from .worker_pool import WorkerPool, WorkerState
from .ocr_client import OcrClient
from .image_converter import HttpImageConverter, PyMuPDFImageConverter
from .document_analyzer import DocumentAnalyzer
from .batch_scheduler import BatchScheduler, BatchRun
from .reconciliation import reconcile
from .pricing_calculator import calculate_price
from .engine import PricingEngine, DocumentState

__all__ = ['AnalysisError', 'UnsupportedFileType', 'ParseFailure', 'ExtractionFailure', 'OcrFailure', 'WorkerUnavailable', 'ReconciliationMismatch', 'PageReader', 'sniff_file_type', 'DensityClassifier', 'DensityThresholds', 'PageClassification', 'DENSITY_FRACTIONS', 'InlineAnalyzer', 'WorkerPool', 'WorkerState', 'OcrClient', 'HttpImageConverter', 'PyMuPDFImageConverter', 'DocumentAnalyzer', 'BatchScheduler', 'BatchRun', 'reconcile', 'calculate_price', 'PricingEngine', 'DocumentState']
