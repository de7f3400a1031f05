# ============================================================================
# src/medscan/preprocessors/image_normalizer.py
# ============================================================================
"""
Image Normalization for Label Scanning

Brings an arbitrary photo or rendered PDF page into a canonical raster:
- Decode (PNG, JPEG, TIFF, WEBP, ...) with EXIF orientation applied
- Upscale small captures towards 2000px on the long side (never downscale)
- Coarse 90 degree rotation correction
- Blur scoring (Laplacian response)

Blur is reported, never enforced: a blurry label still goes through
binarization and recognition.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple, Union
import logging
import math

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..config import ocr_settings
from ..core.raster import RasterImage
from ..utils.exceptions import DecodeError
from ..utils.logging import log_performance

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, Image.Image]


@dataclass(frozen=True)
class NormalizedImage:
    """Output of the normalizer stage."""
    image: RasterImage
    original_size: Tuple[int, int]  # (width, height) before scaling
    scale: float
    rotation_corrected: bool
    blur_score: float  # Higher = sharper
    is_blurry: bool


class ImageNormalizer:
    """
    Normalizes label images before binarization.

    Rotation heuristic:
        Sample every 10th row/column of the red channel and compare the
        energy of differences to the right neighbour (horizontal) against
        the neighbour below (vertical). A ratio above 1.2 means the text
        lines probably run vertically, and the image is turned 90 degrees
        clockwise. 90 and 270 are not told apart; upside-down output after
        "correction" is a known limitation.

    Blur score:
        Mean absolute 4-neighbour Laplacian over the interior pixels of a luma
        copy, times 10.
        Below 100 is flagged blurry.
    """

    ROTATION_SAMPLE_STEP = 10

    def __init__(
        self,
        target_dimension: Optional[int] = None,
        max_upscale: Optional[float] = None,
        rotation_ratio_threshold: Optional[float] = None,
        blur_threshold: Optional[float] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.target_dimension = target_dimension or ocr_settings.OCR_TARGET_DIMENSION
        self.max_upscale = max_upscale or ocr_settings.OCR_MAX_UPSCALE
        self.rotation_ratio_threshold = (
            rotation_ratio_threshold or ocr_settings.OCR_ROTATION_RATIO_THRESHOLD
        )
        self.blur_threshold = (
            blur_threshold if blur_threshold is not None else ocr_settings.OCR_BLUR_THRESHOLD
        )

    @log_performance(logger, "Image normalization")
    def normalize(self, source: ImageSource) -> NormalizedImage:
        """
        Normalize an image.

        Args:
            source: Raw encoded image bytes, or an already decoded PIL image
                    (e.g. a rendered PDF page)

        Returns:
            NormalizedImage with the scaled/rotated raster and blur metadata

        Raises:
            DecodeError: If the bytes are not a decodable image
        """
        image = self.decode(source)
        original_size = image.size

        scale = self.compute_scale(*original_size)
        if scale != 1.0:
            new_size = (
                math.floor(original_size[0] * scale),
                math.floor(original_size[1] * scale),
            )
            image = image.resize(new_size, Image.Resampling.BILINEAR)

        pixels = np.array(image, dtype=np.uint8)

        rotation = self.detect_rotation(pixels)
        rotation_corrected = rotation != 0
        if rotation_corrected:
            # k=-1 turns clockwise
            pixels = np.rot90(pixels, k=-1)

        raster = RasterImage(pixels)
        blur_score = self.calculate_blur_score(raster.pixels)
        is_blurry = blur_score < self.blur_threshold

        self.logger.info(
            f"Normalized image {original_size[0]}x{original_size[1]} -> "
            f"{raster.width}x{raster.height} (scale={scale:.2f}, rotation={rotation}, "
            f"blur={blur_score:.1f})"
        )
        if is_blurry:
            self.logger.warning(
                f"Image appears blurry (score {blur_score:.1f} < {self.blur_threshold}); "
                "recognition accuracy may be reduced"
            )

        return NormalizedImage(
            image=raster,
            original_size=original_size,
            scale=scale,
            rotation_corrected=rotation_corrected,
            blur_score=blur_score,
            is_blurry=is_blurry,
        )

    def decode(self, source: ImageSource) -> Image.Image:
        """Decode to an RGBA PIL image with EXIF orientation applied."""
        if isinstance(source, Image.Image):
            image = source
        elif isinstance(source, (bytes, bytearray)):
            if not source:
                raise DecodeError("Empty image data")
            try:
                image = Image.open(BytesIO(source))
                image.load()
            except (UnidentifiedImageError, OSError, ValueError) as e:
                raise DecodeError(f"Could not decode image: {e}") from e
        else:
            raise DecodeError(f"Unsupported image source type: {type(source).__name__}")

        # Camera photos carry orientation in EXIF rather than in the pixels
        try:
            image = ImageOps.exif_transpose(image)
        except (OSError, ValueError, TypeError) as e:
            self.logger.debug(f"EXIF orientation not applied: {e}")

        if image.width < 1 or image.height < 1:
            raise DecodeError(f"Image has no pixels: {image.size}")

        return image.convert("RGBA")

    def compute_scale(self, width: int, height: int) -> float:
        """clamp(target / max(width, height), 1, max_upscale)"""
        max_dimension = max(width, height)
        scale = min(self.max_upscale, self.target_dimension / max_dimension)
        return max(1.0, scale)

    def detect_rotation(self, pixels: np.ndarray) -> int:
        """
        Guess whether the image needs a 90 degree turn.

        Returns:
            0 or 90 (never 180/270)
        """
        height, width = pixels.shape[:2]
        step = self.ROTATION_SAMPLE_STEP

        ys = np.arange(step, height - step, step)
        xs = np.arange(step, width - step, step)
        if ys.size == 0 or xs.size == 0:
            return 0

        red = pixels[..., 0].astype(np.int64)
        current = red[np.ix_(ys, xs)]
        right = red[np.ix_(ys, xs + 1)]
        below = red[np.ix_(ys + 1, xs)]

        horizontal_energy = int(np.abs(current - right).sum())
        vertical_energy = int(np.abs(current - below).sum())

        ratio = vertical_energy / (horizontal_energy + 1)
        self.logger.debug(
            f"Rotation energies: horizontal={horizontal_energy}, "
            f"vertical={vertical_energy}, ratio={ratio:.2f}"
        )

        if ratio > self.rotation_ratio_threshold:
            return 90
        return 0

    @staticmethod
    def calculate_blur_score(pixels: np.ndarray) -> float:
        """
        Laplacian blur score. Higher score = sharper image.

        Computed on the luma channel. Images without interior pixels
        (width or height < 3) score 0.
        """
        gray = RasterImage(pixels).luma().astype(np.int64)
        if gray.shape[0] < 3 or gray.shape[1] < 3:
            return 0.0

        center = gray[1:-1, 1:-1]
        laplacian = np.abs(
            4 * center
            - gray[:-2, 1:-1]
            - gray[2:, 1:-1]
            - gray[1:-1, :-2]
            - gray[1:-1, 2:]
        )
        return float(laplacian.mean() * 10)


def normalize_image(source: ImageSource) -> NormalizedImage:
    """Convenience function to normalize an image with default settings."""
    return ImageNormalizer().normalize(source)
