# ============================================================================
# src/medscan/core/raster.py
# ============================================================================
"""
In-memory raster image passed between pipeline stages.

Pixels are always RGBA ``uint8`` with shape ``(height, width, 4)``. The
array is frozen (``writeable = False``) on construction, so a stage that
wants to modify pixels has to copy first.
"""

import base64
from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


@dataclass(frozen=True, eq=False, repr=False)
class RasterImage:
    """Immutable RGBA raster."""
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) RGBA pixels, got {pixels.shape}")
        if pixels.dtype != np.uint8:
            pixels = pixels.astype(np.uint8)
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self):
        """(width, height), matching PIL's convention."""
        return self.width, self.height

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    @classmethod
    def from_gray(cls, gray: np.ndarray) -> "RasterImage":
        """Build an opaque RGBA image from a single byte channel."""
        gray = np.asarray(gray, dtype=np.uint8)
        alpha = np.full(gray.shape, 255, dtype=np.uint8)
        return cls(np.dstack([gray, gray, gray, alpha]))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.array(self.pixels), mode="RGBA")

    def luma(self) -> np.ndarray:
        """
        Grayscale channel as ``uint8``.

        Rounds half-to-even and clamps into 0..255.
        """
        rgb = self.pixels[..., :3].astype(np.float64)
        gray = rgb[..., 0] * LUMA_WEIGHTS[0] + rgb[..., 1] * LUMA_WEIGHTS[1] + rgb[..., 2] * LUMA_WEIGHTS[2]
        return np.clip(np.rint(gray), 0, 255).astype(np.uint8)

    def to_png_bytes(self) -> bytes:
        buffer = BytesIO()
        self.to_pil().save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.to_png_bytes()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def __eq__(self, other):
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    def __repr__(self):
        return f"RasterImage(width={self.width}, height={self.height})"
