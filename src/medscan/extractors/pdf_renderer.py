# ============================================================================
# src/medscan/extractors/pdf_renderer.py
# ============================================================================
"""
PDF page rendering for scanned prescriptions.

Uses pypdfium2 to rasterize each page so it can go through the same
normalize -> binarize -> recognize path as a photo.
"""

from typing import Iterator, List, Optional, Tuple, Union
from pathlib import Path
import logging

import pypdfium2
from PIL import Image

from ..config import ocr_settings
from ..utils.exceptions import DecodeError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

PdfSource = Union[bytes, bytearray, Path, str]


def is_pdf(data: Union[bytes, bytearray]) -> bool:
    """Check PDF magic bytes (tolerates a short preamble before the header)."""
    return PDF_MAGIC in bytes(data[:1024])


def _open_document(source: PdfSource) -> pypdfium2.PdfDocument:
    try:
        if isinstance(source, (bytes, bytearray)):
            return pypdfium2.PdfDocument(bytes(source))
        return pypdfium2.PdfDocument(str(source))
    except pypdfium2.PdfiumError as e:
        raise DecodeError(f"Could not open PDF: {e}") from e


def iter_pdf_pages(
    source: PdfSource,
    dpi: Optional[int] = None,
) -> Iterator[Tuple[int, Image.Image]]:
    """
    Render PDF pages lazily, in page order.

    Args:
        source: PDF bytes or path
        dpi: Rendering resolution (default: PDF_RENDER_DPI)

    Yields:
        (page_number, PIL.Image) tuples

    Raises:
        DecodeError: If the document or a page cannot be rendered
    """
    dpi = dpi or ocr_settings.PDF_RENDER_DPI
    scale = dpi / 72.0  # PDF points to pixels

    pdf = _open_document(source)
    try:
        for page_num in range(len(pdf)):
            page = pdf[page_num]
            try:
                bitmap = page.render(scale=scale)
                pil_image = bitmap.to_pil()
            except pypdfium2.PdfiumError as e:
                raise DecodeError(f"Could not render PDF page {page_num}: {e}") from e
            finally:
                page.close()

            yield page_num, pil_image
    finally:
        pdf.close()


def convert_pdf_to_images(
    source: PdfSource,
    dpi: Optional[int] = None,
) -> List[Image.Image]:
    """Render every page of a PDF. Empty documents raise DecodeError."""
    images = [image for _, image in iter_pdf_pages(source, dpi=dpi)]
    if not images:
        raise DecodeError("PDF contains no pages")
    logger.info(f"PDF converted to {len(images)} image(s)")
    return images
