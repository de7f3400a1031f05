# ============================================================================
# src/medscan/preprocessors/__init__.py
# ============================================================================
"""
Image preprocessing stages: normalization and binarization strategy search.
"""

from .image_normalizer import ImageNormalizer, NormalizedImage, normalize_image
from .strategy_selector import (
    PreprocessingStrategy,
    StrategySelection,
    StrategySelector,
    apply_strategy,
    score_edges,
    select_best_strategy,
)
