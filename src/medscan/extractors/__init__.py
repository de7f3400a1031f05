# ============================================================================
# src/medscan/extractors/__init__.py
# ============================================================================
"""
Text Extraction Module

- Recognition adapter around an external OCR engine (Tesseract by default)
- PDF page rendering (pypdfium2)
"""

from .recognition import (
    RecognitionEngine,
    RecognitionResult,
    TesseractEngine,
    WordBox,
    recognition_session,
    recognize_image,
)
from .pdf_renderer import convert_pdf_to_images, iter_pdf_pages, is_pdf
