# ============================================================================
# src/medscan/core/scan_pipeline.py
# ============================================================================
"""
Scan Pipeline

Orchestrates the four stages for a captured image or an uploaded PDF:

    bytes -> normalize -> select binarization -> recognize -> parse

PDF pages are processed strictly in page order, one at a time. Medication
candidates are collected from every page; patient identity is read from
the first page only.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import logging

from PIL import Image

from ..config import ocr_settings
from ..extractors.pdf_renderer import is_pdf, iter_pdf_pages
from ..extractors.recognition import EngineFactory, WordBox, recognize_image
from ..preprocessors.image_normalizer import ImageNormalizer
from ..preprocessors.strategy_selector import PreprocessingStrategy, StrategySelector
from ..processors.prescription import (
    MedicationCandidate,
    PatientIdentityCandidate,
    parse_multiple_medications,
    parse_patient_info_from_text,
)
from ..utils.exceptions import DecodeError, RecognitionError
from ..utils.logging import LogContext
from .raster import RasterImage

logger = logging.getLogger(__name__)

# Message callers show when a scan produced nothing
SCAN_FAILURE_MESSAGE = "Failed to extract text from image"


@dataclass(frozen=True)
class OCRResult:
    """Recognized text for one image plus the rasters that produced it."""
    text: str
    confidence: float
    preprocessed_image: RasterImage
    preview_image: RasterImage
    is_blurry: bool
    blur_score: float
    rotation_corrected: bool
    preprocessing_strategy: PreprocessingStrategy
    words: Tuple[WordBox, ...] = field(default_factory=tuple)

    @property
    def preview_image_width(self) -> int:
        return self.preview_image.width

    @property
    def preview_image_height(self) -> int:
        return self.preview_image.height

    def to_dict(self, include_images: bool = True) -> Dict[str, Any]:
        result = {
            "text": self.text,
            "confidence": self.confidence,
            "preview_image_width": self.preview_image_width,
            "preview_image_height": self.preview_image_height,
            "is_blurry": self.is_blurry,
            "blur_score": self.blur_score,
            "rotation_corrected": self.rotation_corrected,
            "preprocessing_strategy": self.preprocessing_strategy.value,
            "words": [w.to_dict() for w in self.words],
        }
        if include_images:
            result["preprocessed_image"] = self.preprocessed_image.to_data_url()
            result["preview_image"] = self.preview_image.to_data_url()
        return result


@dataclass
class ScanResult:
    """Everything extracted from one document."""
    pages: List[OCRResult] = field(default_factory=list)
    medications: List[MedicationCandidate] = field(default_factory=list)
    patient: Optional[PatientIdentityCandidate] = None
    skipped_pages: List[int] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(page.text for page in self.pages)

    def to_dict(self, include_images: bool = False) -> Dict[str, Any]:
        return {
            "pages": [page.to_dict(include_images=include_images) for page in self.pages],
            "medications": [m.to_dict() for m in self.medications],
            "patient": self.patient.to_dict() if self.patient else None,
            "skipped_pages": list(self.skipped_pages),
        }


async def run_ocr(
    source: Union[bytes, bytearray, Image.Image],
    engine_factory: Optional[EngineFactory] = None,
) -> OCRResult:
    """
    Recognize one image.

    Args:
        source: Encoded image bytes or a decoded PIL image (PDF page)
        engine_factory: Recognition engine factory (default: Tesseract)

    Raises:
        DecodeError: Source is not a decodable image
        RecognitionError: Engine unavailable, failed or timed out
    """
    normalized = ImageNormalizer().normalize(source)
    selection = StrategySelector().select(normalized)
    recognition = await recognize_image(selection.image, engine_factory=engine_factory)

    return OCRResult(
        text=recognition.text,
        confidence=recognition.confidence,
        preprocessed_image=selection.image,
        preview_image=selection.full_color_image,
        is_blurry=normalized.is_blurry,
        blur_score=normalized.blur_score,
        rotation_corrected=normalized.rotation_corrected,
        preprocessing_strategy=selection.strategy,
        words=recognition.words,
    )


def parse_scanned_pages(
    texts: Sequence[str],
) -> Tuple[List[MedicationCandidate], Optional[PatientIdentityCandidate]]:
    """
    Parse already recognized page texts.

    Returns:
        (medications from all pages in order, patient from the first page)
    """
    medications: List[MedicationCandidate] = []
    for text in texts:
        medications.extend(parse_multiple_medications(text))

    patient = parse_patient_info_from_text(texts[0]) if texts else None
    return medications, patient


async def scan_document(
    data: Union[bytes, bytearray],
    engine_factory: Optional[EngineFactory] = None,
    skip_failed_pages: Optional[bool] = None,
) -> ScanResult:
    """
    Scan an image or a PDF.

    Args:
        data: Encoded image or PDF bytes
        engine_factory: Recognition engine factory (default: Tesseract)
        skip_failed_pages: Record failing pages and carry on instead of
                           aborting (default: OCR_SKIP_FAILED_PAGES)

    Returns:
        ScanResult with per-page OCR output and parsed candidates

    Raises:
        DecodeError, RecognitionError: A page failed and skipping is off
    """
    if skip_failed_pages is None:
        skip_failed_pages = ocr_settings.OCR_SKIP_FAILED_PAGES

    if is_pdf(data):
        pages = iter_pdf_pages(data)
        logger.info("Scanning PDF document")
    else:
        pages = iter([(0, data)])

    result = ScanResult()
    texts: Dict[int, str] = {}
    page_count = 0

    for page_num, page_source in pages:
        page_count += 1
        with LogContext(logger, page=page_num):
            try:
                ocr = await run_ocr(page_source, engine_factory=engine_factory)
            except (DecodeError, RecognitionError) as e:
                if not skip_failed_pages:
                    logger.error(f"Page {page_num} failed, aborting scan: {e}")
                    raise
                logger.warning(f"Page {page_num} failed, skipping: {e}")
                result.skipped_pages.append(page_num)
                continue

            result.pages.append(ocr)
            texts[page_num] = ocr.text
            medications = parse_multiple_medications(ocr.text)
            result.medications.extend(medications)
            logger.info(f"Page {page_num}: {len(medications)} medication(s)")

    if page_count == 0:
        raise DecodeError("PDF contains no pages")

    # Identity lives in the document header
    if 0 in texts:
        result.patient = parse_patient_info_from_text(texts[0])

    logger.info(
        f"Scan complete: {len(result.pages)} page(s), {len(result.medications)} medication(s), "
        f"{len(result.skipped_pages)} skipped"
    )
    return result
