"""
Fast-pass and deep-pass orchestration.

The fast pass gives an instant, worst-case estimate from the page structure.
The deep pass extracts text through the worker pool, classifies every page,
and escalates once to OCR when a document yields (almost) no text.
"""

from dataclasses import replace
import logging
from typing import Optional

from config import OCR_MIN_TEXT_CHARS
from models.analysis import AnalysisPhase, DocumentAnalysis, FileType, UploadedFile
from services.density_classifier import DensityThresholds
from services.errors import AnalysisError, ParseFailure, UnsupportedFileType
from services.image_converter import default_image_converter
from services.page_analyzer import RequestKind, all_scanned
from services.page_reader import sniff_file_type
from services.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class DocumentAnalyzer:
    """Runs fast and deep passes for single files through a WorkerPool."""

    def __init__(
        self,
        pool: WorkerPool,
        ocr_client=None,
        image_converter=None,
        thresholds: DensityThresholds = None,
        ocr_min_text_chars: int = OCR_MIN_TEXT_CHARS,
    ):
        """
        Initialize the analyzer.

        Args:
            pool: Started (or startable) worker pool
            ocr_client: Object with ``async recognize(pdf_bytes, file_name) -> bytes``;
                None disables the OCR escalation
            image_converter: Object with ``async convert(image_bytes, file_name) -> bytes``
            thresholds: Density thresholds sent to the workers
            ocr_min_text_chars: Escalate to OCR below this many characters
        """
        self.pool = pool
        self.ocr_client = ocr_client
        self.image_converter = image_converter or default_image_converter()
        self.thresholds = thresholds or DensityThresholds()
        self.ocr_min_text_chars = ocr_min_text_chars

    @staticmethod
    def resolve_type(file: UploadedFile) -> FileType:
        """
        Sniff the file type of an upload.

        Raises:
            UnsupportedFileType: If the engine cannot price this file
        """
        file_type = sniff_file_type(file.data, file.file_name, file.mime_type)
        if file_type == FileType.UNKNOWN:
            raise UnsupportedFileType(
                f"Unsupported file type: {file.file_name}",
                {"file_name": file.file_name, "mime_type": file.mime_type},
            )
        return file_type

    async def fast_pass(self, file: UploadedFile, base_price: float) -> DocumentAnalysis:
        """
        Structure-only analysis priced at the worst case for the file type.

        Raises:
            UnsupportedFileType: If the file type is not supported
            ParseFailure: If the page count cannot be determined
        """
        file_type = self.resolve_type(file)
        request = self.pool.new_request(
            RequestKind.FAST_PASS,
            data=file.data,
            file_name=file.file_name,
            file_type=file_type,
            base_price=base_price,
        )
        response = await self.pool.run(request)
        logger.info(
            f"Fast pass {file.file_name}: {response.result.total_pages} pages",
            extra={"file_name": file.file_name, "phase": AnalysisPhase.FAST.value},
        )
        return response.result

    async def deep_pass(self, file: UploadedFile, base_price: float) -> DocumentAnalysis:
        """
        Full text-based analysis.

        Failures other than structural ones degrade to a worst-case priced
        result with the structural page count.

        Raises:
            UnsupportedFileType: If the file type is not supported
            ParseFailure: If no page tree can be found
        """
        file_type = self.resolve_type(file)
        try:
            analysis = await self._deep_pass(file, file_type, base_price)
        except (ParseFailure, UnsupportedFileType):
            raise
        except AnalysisError as e:
            logger.warning(
                f"Deep pass failed for {file.file_name}, using worst-case pricing: {e.message}",
                extra={"file_name": file.file_name, "error_code": e.code},
            )
            fallback = await self.fast_pass(file, base_price)
            analysis = replace(fallback, phase=AnalysisPhase.DEEP)

        logger.info(
            f"Deep pass {file.file_name}: {analysis.total_pages} pages, "
            f"total={analysis.total_price:.2f}, ocr={analysis.ocr_applied}",
            extra={"file_name": file.file_name, "phase": AnalysisPhase.DEEP.value},
        )
        return analysis

    async def _deep_pass(self, file: UploadedFile, file_type: FileType, base_price: float) -> DocumentAnalysis:
        data, read_type = file.data, file_type

        if file_type == FileType.IMAGE:
            converted = await self._convert_image(file)
            if converted is not None:
                data, read_type = converted, FileType.PDF

        analysis, char_count = await self._extract(data, read_type, file, base_price, file_type)

        # DOCX text is always recoverable; unconverted images are already scanned
        if read_type != FileType.PDF or char_count >= self.ocr_min_text_chars:
            return analysis

        return await self._escalate_to_ocr(analysis, data, file, base_price, file_type)

    async def _convert_image(self, file: UploadedFile) -> Optional[bytes]:
        try:
            return await self.image_converter.convert(file.data, file.file_name)
        except AnalysisError as e:
            logger.warning(
                f"Image conversion failed for {file.file_name}: {e.message}",
                extra={"file_name": file.file_name, "error_code": e.code},
            )
            return None

    async def _extract(self, data: bytes, read_type: FileType, file: UploadedFile, base_price: float, source_type: FileType):
        request = self.pool.new_request(
            RequestKind.DEEP_PASS,
            data=data,
            file_name=file.file_name,
            file_type=read_type,
            base_price=base_price,
            source_type=source_type,
            thresholds=self.thresholds,
        )
        response = await self.pool.run(request)
        return response.result, response.char_count

    async def _escalate_to_ocr(
        self,
        analysis: DocumentAnalysis,
        pdf_bytes: bytes,
        file: UploadedFile,
        base_price: float,
        source_type: FileType,
    ) -> DocumentAnalysis:
        """Single OCR retry. Any failure prices every page as scanned."""
        if self.ocr_client is None:
            logger.info(
                f"No text in {file.file_name} and no OCR configured, pricing as scanned",
                extra={"file_name": file.file_name},
            )
            return all_scanned(analysis)

        try:
            ocr_pdf = await self.ocr_client.recognize(pdf_bytes, file.file_name)
            ocr_analysis, ocr_chars = await self._extract(
                ocr_pdf, FileType.PDF, file, base_price, source_type
            )
        except AnalysisError as e:
            logger.warning(
                f"OCR escalation failed for {file.file_name}: {e.message}",
                extra={"file_name": file.file_name, "error_code": e.code},
            )
            return all_scanned(analysis)

        if ocr_analysis.total_pages != analysis.total_pages:
            logger.warning(
                f"OCR returned {ocr_analysis.total_pages} pages for {file.file_name}, "
                f"expected {analysis.total_pages}",
                extra={"file_name": file.file_name},
            )
            return all_scanned(analysis)

        if ocr_chars == 0:
            logger.info(f"OCR found no text in {file.file_name}", extra={"file_name": file.file_name})
            return all_scanned(analysis)

        return replace(ocr_analysis, ocr_applied=True, is_image=True)
