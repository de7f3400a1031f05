# ============================================================================
# FILE: tests/unit/test_strategy_selector.py
# ============================================================================
"""
Unit tests for binarization strategies and edge-count selection
"""

from unittest.mock import patch

import numpy as np
import pytest

from medscan.core.raster import RasterImage
from medscan.preprocessors.image_normalizer import NormalizedImage
from medscan.preprocessors.strategy_selector import (
    PreprocessingStrategy,
    StrategySelector,
    apply_contrast,
    apply_strategy,
    box_blur,
    contrast_factor,
    score_edges,
    select_best_strategy,
)


def _normalized(gray: np.ndarray) -> NormalizedImage:
    return NormalizedImage(
        image=RasterImage.from_gray(gray),
        original_size=(gray.shape[1], gray.shape[0]),
        scale=1.0,
        rotation_corrected=False,
        blur_score=0.0,
        is_blurry=True,
    )


@pytest.fixture
def noisy_gray():
    rng = np.random.default_rng(seed=7)
    return rng.integers(0, 256, size=(60, 80), dtype=np.uint8)


class TestPixelOperations:

    def test_contrast_factor(self):
        assert contrast_factor(1.5) == pytest.approx(259 * 256.5 / (255 * 257.5))
        assert contrast_factor(0) == pytest.approx(259 * 255 / (255 * 259))

    def test_contrast_is_clamped(self):
        gray = np.array([[0, 128, 255]], dtype=np.uint8)
        result = apply_contrast(gray, 2.5)
        assert result.dtype == np.uint8
        assert result[0, 0] == 0
        assert result[0, 1] == 128
        assert result[0, 2] == 255

    def test_box_blur_keeps_edge_rows(self):
        gray = np.zeros((3, 3), dtype=np.uint8)
        gray[1, 1] = 255
        result = box_blur(gray)

        assert result[0].tolist() == [0, 0, 0]
        assert result[2].tolist() == [0, 0, 0]
        # Each middle-row pixel sees the bright centre once among five
        assert result[1].tolist() == [51, 51, 51]

    def test_box_blur_short_image_unchanged(self):
        gray = np.array([[10, 200], [30, 40]], dtype=np.uint8)
        assert np.array_equal(box_blur(gray), gray)

    def test_binarized_output_is_black_or_white(self, noisy_gray):
        for strategy in PreprocessingStrategy:
            result = apply_strategy(RasterImage.from_gray(noisy_gray), strategy)
            values = set(np.unique(result.pixels[..., :3]).tolist())
            assert values <= {0, 255}
            assert np.all(result.pixels[..., 3] == 255)

    def test_thresholds_differ_between_strategies(self):
        # Grey 135 is white under a 128 cut but black under 140
        gray = np.full((4, 4), 135, dtype=np.uint8)
        image = RasterImage.from_gray(gray)

        denoise = apply_strategy(image, PreprocessingStrategy.DENOISE)
        high_contrast = apply_strategy(image, PreprocessingStrategy.HIGH_CONTRAST)

        assert denoise.pixels[0, 0, 0] == 255
        assert high_contrast.pixels[0, 0, 0] == 0

    def test_input_not_modified(self, noisy_gray):
        image = RasterImage.from_gray(noisy_gray)
        before = image.pixels.copy()
        apply_strategy(image, PreprocessingStrategy.AGGRESSIVE)
        assert np.array_equal(image.pixels, before)


class TestScoreEdges:

    def test_counts_sampled_transitions(self):
        row = np.array([[0, 255] * 10], dtype=np.uint8)
        # Samples at 1, 5, 9, 13, 17 each differ by 255 from their neighbour
        assert score_edges(RasterImage.from_gray(row)) == 5

    def test_flat_image_scores_zero(self):
        assert score_edges(RasterImage.from_gray(np.full((10, 10), 255, dtype=np.uint8))) == 0

    def test_small_differences_ignored(self):
        row = np.array([[0, 150] * 10], dtype=np.uint8)
        assert score_edges(RasterImage.from_gray(row)) == 0


class TestStrategySelector:

    def test_all_zero_scores_pick_standard(self):
        selection = select_best_strategy(_normalized(np.full((20, 20), 255, dtype=np.uint8)))

        assert selection.strategy is PreprocessingStrategy.STANDARD
        assert set(selection.scores.values()) == {0}

    def test_ties_keep_earlier_strategy(self):
        normalized = _normalized(np.full((10, 10), 100, dtype=np.uint8))
        with patch(
            "medscan.preprocessors.strategy_selector.score_edges",
            side_effect=[5, 9, 9, 3],
        ):
            selection = StrategySelector().select(normalized)

        assert selection.strategy is PreprocessingStrategy.HIGH_CONTRAST

    def test_highest_score_wins(self):
        normalized = _normalized(np.full((10, 10), 100, dtype=np.uint8))
        with patch(
            "medscan.preprocessors.strategy_selector.score_edges",
            side_effect=[1, 2, 3, 4],
        ):
            selection = StrategySelector().select(normalized)

        assert selection.strategy is PreprocessingStrategy.AGGRESSIVE
        assert selection.scores[PreprocessingStrategy.DENOISE] == 3

    def test_selection_is_deterministic(self, noisy_gray):
        normalized = _normalized(noisy_gray)

        first = select_best_strategy(normalized)
        second = select_best_strategy(normalized)

        assert first.strategy is second.strategy
        assert first.image == second.image
        assert first.scores == second.scores

    def test_full_color_image_preserved(self, noisy_gray):
        normalized = _normalized(noisy_gray)
        selection = select_best_strategy(normalized)
        assert selection.full_color_image is normalized.image

    def test_enumeration_order(self):
        assert [s.value for s in PreprocessingStrategy] == [
            "standard", "high-contrast", "denoise", "aggressive",
        ]
