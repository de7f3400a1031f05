# ============================================================================
# src/medscan/preprocessors/strategy_selector.py
# ============================================================================
"""
Binarization Strategy Selection

Brute-force multi-hypothesis search: every strategy binarizes the same
normalized image, and the one with the most crisp black/white transitions
wins. There is no training data at run time, so no learned classifier.

Strategies (grayscale -> contrast curve -> fixed threshold):

    standard       contrast 1.5        threshold 128
    high-contrast  contrast 2.0        threshold 140   (faded labels)
    denoise        5-neighbour blur    threshold 128   (noisy scans)
    aggressive     contrast 2.5        threshold 120   (very poor images)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional
import logging

import numpy as np

from ..core.raster import RasterImage
from ..utils.logging import log_performance
from .image_normalizer import NormalizedImage

logger = logging.getLogger(__name__)


class PreprocessingStrategy(Enum):
    """Binarization strategies, in tie-break order."""
    STANDARD = "standard"
    HIGH_CONTRAST = "high-contrast"
    DENOISE = "denoise"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True)
class StrategyParams:
    contrast: Optional[float]  # None = no contrast curve
    threshold: int
    blur: bool = False


STRATEGY_PARAMS: Dict[PreprocessingStrategy, StrategyParams] = {
    PreprocessingStrategy.STANDARD: StrategyParams(contrast=1.5, threshold=128),
    PreprocessingStrategy.HIGH_CONTRAST: StrategyParams(contrast=2.0, threshold=140),
    PreprocessingStrategy.DENOISE: StrategyParams(contrast=None, threshold=128, blur=True),
    PreprocessingStrategy.AGGRESSIVE: StrategyParams(contrast=2.5, threshold=120),
}

# Edge scoring: every 4th pixel compared with its right-hand neighbour
EDGE_SAMPLE_STEP = 4
EDGE_DIFF_THRESHOLD = 200


@dataclass(frozen=True)
class StrategySelection:
    """Winning binarization plus the colour image kept for previews."""
    image: RasterImage
    strategy: PreprocessingStrategy
    full_color_image: RasterImage
    scores: Dict[PreprocessingStrategy, int] = field(default_factory=dict)


def contrast_factor(contrast: float) -> float:
    """Standard contrast-correction factor for a contrast level in [-255, 255]."""
    return (259 * (contrast + 255)) / (255 * (259 - contrast))


def apply_contrast(gray: np.ndarray, contrast: float) -> np.ndarray:
    factor = contrast_factor(contrast)
    adjusted = factor * (gray.astype(np.float64) - 128) + 128
    return np.clip(np.rint(adjusted), 0, 255).astype(np.uint8)


def box_blur(gray: np.ndarray) -> np.ndarray:
    """
    Five-neighbour average (left, self, right, above, below).

    Neighbours follow the flattened pixel order, so left/right wrap across
    row ends. Pixels in the first and last row have no vertical neighbour
    and keep their value.
    """
    height, width = gray.shape
    flat = gray.reshape(-1).astype(np.float64)
    result = flat.copy()

    if height < 3:
        return gray.copy()

    # Flat indices of rows 1..height-2
    start, stop = width, width * (height - 1)
    idx = np.arange(start, stop)
    total = flat[idx - 1] + flat[idx] + flat[idx + 1] + flat[idx - width] + flat[idx + width]
    result[idx] = total / 5

    return np.clip(np.rint(result), 0, 255).astype(np.uint8).reshape(height, width)


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


def apply_strategy(image: RasterImage, strategy: PreprocessingStrategy) -> RasterImage:
    """Binarize ``image`` with one strategy. Pure; the input is not touched."""
    params = STRATEGY_PARAMS[strategy]
    gray = image.luma()

    if params.blur:
        gray = box_blur(gray)
    if params.contrast is not None:
        gray = apply_contrast(gray, params.contrast)

    return RasterImage.from_gray(binarize(gray, params.threshold))


def score_edges(image: RasterImage) -> int:
    """
    Count strong transitions as a proxy for crisp text edges.

    Samples flat pixel indices 1, 5, 9, ... and compares each with the next
    pixel on the red channel.
    """
    flat = image.pixels[..., 0].reshape(-1).astype(np.int16)
    if flat.size < 3:
        return 0
    idx = np.arange(1, flat.size - 1, EDGE_SAMPLE_STEP)
    diffs = np.abs(flat[idx] - flat[idx + 1])
    return int(np.count_nonzero(diffs > EDGE_DIFF_THRESHOLD))


class StrategySelector:
    """
    Runs every PreprocessingStrategy and keeps the best.

    Ties are resolved by enumeration order (standard first), so when all
    strategies score zero the standard binarization is used.
    """

    def __init__(self, strategies=None):
        self.logger = logging.getLogger(__name__)
        self.strategies = list(strategies or PreprocessingStrategy)

    @log_performance(logger, "Strategy selection")
    def select(self, normalized: NormalizedImage) -> StrategySelection:
        source = normalized.image

        best_strategy = None
        best_image = None
        best_score = -1
        scores: Dict[PreprocessingStrategy, int] = {}

        for strategy in self.strategies:
            candidate = apply_strategy(source, strategy)
            score = score_edges(candidate)
            scores[strategy] = score
            self.logger.debug(f"Strategy '{strategy.value}': edge score={score}")

            # Strict '>' keeps the earlier strategy on ties
            if score > best_score:
                best_strategy, best_image, best_score = strategy, candidate, score

        self.logger.info(f"Selected preprocessing strategy '{best_strategy.value}' (edges={best_score})")

        return StrategySelection(
            image=best_image,
            strategy=best_strategy,
            full_color_image=source,
            scores=scores,
        )


def select_best_strategy(normalized: NormalizedImage) -> StrategySelection:
    """Convenience function: evaluate all strategies and return the winner."""
    return StrategySelector().select(normalized)
