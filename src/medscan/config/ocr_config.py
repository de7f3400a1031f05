# ============================================================================
# src/medscan/config/ocr_config.py
# ============================================================================
"""
OCR Pipeline Settings
- Upscaling target for small photos
- Blur / rotation heuristics
- Recognition engine (Tesseract) and its timeout
- PDF rendering resolution
- Multi-page failure policy
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.exceptions import ConfigurationError


class OCRSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    OCR_TARGET_DIMENSION: int = Field(
        default=2000,
        ge=100, le=10000,
        description="Largest image side is scaled up towards this many pixels"
    )
    OCR_MAX_UPSCALE: float = Field(
        default=2.0,
        ge=1.0, le=8.0,
        description="Upper bound on the upscale factor. Images are never downscaled."
    )
    OCR_BLUR_THRESHOLD: float = Field(
        default=100.0,
        ge=0.0,
        description="Laplacian score below this marks the image blurry (informational only)"
    )
    OCR_ROTATION_RATIO_THRESHOLD: float = Field(
        default=1.2,
        gt=0.0,
        description="Vertical/horizontal edge energy ratio above which the image is rotated 90 degrees"
    )
    OCR_RECOGNITION_TIMEOUT: float = Field(
        default=60.0,
        gt=0.0,
        description="Seconds allowed for a single recognition call"
    )
    OCR_LANGUAGE: str = Field(
        default="eng",
        description="Tesseract language pack"
    )
    TESSERACT_CMD: Optional[str] = Field(
        default=None,
        description="Explicit path to the tesseract binary (PATH lookup when unset)"
    )
    PDF_RENDER_DPI: int = Field(
        default=200,
        ge=72, le=600,
        description="Resolution for rendering PDF pages before OCR"
    )
    OCR_SKIP_FAILED_PAGES: bool = Field(
        default=False,
        description="Skip pages that fail decoding/recognition instead of aborting the document"
    )

    @model_validator(mode="after")
    def _check_upscale_target(self):
        if self.OCR_MAX_UPSCALE * self.OCR_TARGET_DIMENSION > 20000:
            raise ConfigurationError(
                "OCR_MAX_UPSCALE * OCR_TARGET_DIMENSION exceeds 20000 pixels"
            )
        return self


ocr_settings = OCRSettings()
