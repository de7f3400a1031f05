# ============================================================================
# FILE: tests/unit/test_recognition.py
# ============================================================================
"""
Unit tests for the recognition adapter.

No Tesseract binary is needed: pytesseract calls are mocked and the
session tests use the in-memory FakeEngine from conftest.
"""

from unittest.mock import patch

import numpy as np
import pytest
import pytesseract

from medscan.core.raster import RasterImage
from medscan.extractors.recognition import (
    TesseractEngine,
    recognition_session,
    recognize_image,
)
from medscan.utils.exceptions import RecognitionError


@pytest.fixture
def raster():
    return RasterImage.from_gray(np.full((20, 20), 255, dtype=np.uint8))


@pytest.fixture
def tesseract_data():
    """image_to_data output: two paragraphs, plus the empty layout rows."""
    return {
        "text": ["", "Lisinopril", "10mg", "", "Take"],
        "conf": ["-1", "95", "90", "-1", "80"],
        "block_num": [1, 1, 1, 1, 1],
        "par_num": [1, 1, 1, 2, 2],
        "line_num": [1, 1, 1, 1, 1],
        "left": [0, 10, 120, 0, 10],
        "top": [0, 5, 5, 0, 40],
        "width": [0, 100, 40, 0, 50],
        "height": [0, 20, 20, 0, 20],
    }


class TestParseTesseractData:

    def test_rebuilds_lines_and_paragraphs(self, tesseract_data):
        result = TesseractEngine.parse_tesseract_data(tesseract_data)
        assert result.text == "Lisinopril 10mg\n\nTake"

    def test_mean_word_confidence(self, tesseract_data):
        result = TesseractEngine.parse_tesseract_data(tesseract_data)
        assert result.confidence == pytest.approx((95 + 90 + 80) / 3)

    def test_word_boxes(self, tesseract_data):
        result = TesseractEngine.parse_tesseract_data(tesseract_data)

        assert [w.text for w in result.words] == ["Lisinopril", "10mg", "Take"]
        assert result.words[0].bbox == (10, 5, 110, 25)
        assert result.words[0].to_dict()["bbox"] == {"x0": 10, "y0": 5, "x1": 110, "y1": 25}

    def test_no_words(self):
        result = TesseractEngine.parse_tesseract_data({"text": []})
        assert result.text == ""
        assert result.confidence == 0.0
        assert result.words == ()


class TestTesseractEngine:

    @pytest.mark.asyncio
    async def test_recognize_before_open(self, raster):
        engine = TesseractEngine()
        with pytest.raises(RecognitionError):
            await engine.recognize(raster)

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        engine = TesseractEngine()
        with patch(
            "medscan.extractors.recognition.pytesseract.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(RecognitionError) as exc_info:
                await engine.open()

        assert exc_info.value.engine == "tesseract"
        assert engine.is_open is False

    @pytest.mark.asyncio
    async def test_recognize(self, raster, tesseract_data):
        engine = TesseractEngine(language="eng")
        with patch(
            "medscan.extractors.recognition.pytesseract.get_tesseract_version",
            return_value="5.3.0",
        ):
            await engine.open()

        with patch.object(engine, "_image_to_data", return_value=tesseract_data):
            result = await engine.recognize(raster)

        assert result.text.startswith("Lisinopril 10mg")
        await engine.close()
        assert engine.is_open is False

    @pytest.mark.asyncio
    async def test_engine_failure_wrapped(self, raster):
        engine = TesseractEngine()
        with patch(
            "medscan.extractors.recognition.pytesseract.get_tesseract_version",
            return_value="5.3.0",
        ):
            await engine.open()

        with patch.object(
            engine, "_image_to_data", side_effect=pytesseract.TesseractError(1, "bad image")
        ):
            with pytest.raises(RecognitionError):
                await engine.recognize(raster)


class TestRecognitionSession:

    @pytest.mark.asyncio
    async def test_closes_on_success(self, raster, fake_engine_factory, fake_engines):
        async with recognition_session(fake_engine_factory(["Aspirin"])) as engine:
            result = await engine.recognize(raster)

        assert result.text == "Aspirin"
        assert fake_engines[0].opened
        assert fake_engines[0].closed

    @pytest.mark.asyncio
    async def test_closes_on_error(self, raster, fake_engine_factory, fake_engines):
        factory = fake_engine_factory([RuntimeError("engine crashed")])

        with pytest.raises(RuntimeError):
            async with recognition_session(factory) as engine:
                await engine.recognize(raster)

        assert fake_engines[0].closed


class TestRecognizeImage:

    @pytest.mark.asyncio
    async def test_returns_result(self, raster, fake_engine_factory):
        result = await recognize_image(raster, engine_factory=fake_engine_factory(["Take 1 tablet"]))

        assert result.text == "Take 1 tablet"
        assert len(result.words) == 3
        assert result.confidence == 90.0

    @pytest.mark.asyncio
    async def test_engine_error_surfaces_as_recognition_error(
        self, raster, fake_engine_factory, fake_engines
    ):
        factory = fake_engine_factory([RuntimeError("engine crashed")])

        with pytest.raises(RecognitionError) as exc_info:
            await recognize_image(raster, engine_factory=factory)

        assert exc_info.value.engine == "fake"
        assert fake_engines[0].closed

    @pytest.mark.asyncio
    async def test_recognition_error_passes_through(self, raster, fake_engine_factory):
        factory = fake_engine_factory([RecognitionError("no text layer", engine="fake")])

        with pytest.raises(RecognitionError, match="no text layer"):
            await recognize_image(raster, engine_factory=factory)

    @pytest.mark.asyncio
    async def test_timeout(self, raster, fake_engine_factory, fake_engines):
        factory = fake_engine_factory(["late"], delay=1.0)

        with pytest.raises(RecognitionError, match="timed out"):
            await recognize_image(raster, engine_factory=factory, timeout=0.05)

        assert fake_engines[0].closed
