# ============================================================================
# src/medscan/extractors/recognition.py
# ============================================================================
"""
Recognition Adapter

Boundary to the external OCR engine. The rest of the pipeline depends only
on RecognitionResult (text, confidence, word boxes); any engine that
implements RecognitionEngine is interchangeable.

Engine lifecycle is scoped: ``recognition_session`` opens an engine and
closes it on every exit path, including failures and timeouts.

    async with recognition_session(TesseractEngine) as engine:
        result = await engine.recognize(image)
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple
import asyncio
import logging

import pytesseract

from ..config import ocr_settings
from ..core.raster import RasterImage
from ..utils.exceptions import RecognitionError


@dataclass(frozen=True)
class WordBox:
    """A word with its bounding box."""
    text: str
    bbox: Tuple[int, int, int, int]  # (x0, y0, x1, y1) in pixels
    confidence: float  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        x0, y0, x1, y1 = self.bbox
        return {
            "text": self.text,
            "bbox": {"x0": x0, "y0": y0, "x1": x1, "y1": y1},
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class RecognitionResult:
    """Output of one recognition call."""
    text: str
    confidence: float  # Engine-reported, 0-100
    words: Tuple[WordBox, ...] = field(default_factory=tuple)


class RecognitionEngine(ABC):
    """
    Abstract OCR engine.

    All engines must implement:
    - open(): Acquire engine resources
    - recognize(): Text + word boxes for one raster
    - close(): Release resources (must be safe to call more than once)
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def engine_name(self) -> str:
        pass

    @abstractmethod
    async def open(self) -> None:
        pass

    @abstractmethod
    async def recognize(self, image: RasterImage) -> RecognitionResult:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class TesseractEngine(RecognitionEngine):
    """
    Tesseract via pytesseract.

    Tesseract runs as a subprocess, so the blocking call goes to the default
    executor. ``process_timeout`` is handed to pytesseract, which kills the
    subprocess when exceeded.
    """

    def __init__(
        self,
        language: Optional[str] = None,
        tesseract_cmd: Optional[str] = None,
        process_timeout: Optional[float] = None,
    ):
        super().__init__()
        self.language = language or ocr_settings.OCR_LANGUAGE
        self.tesseract_cmd = tesseract_cmd or ocr_settings.TESSERACT_CMD
        self.process_timeout = process_timeout or ocr_settings.OCR_RECOGNITION_TIMEOUT
        self._is_open = False

    @property
    def engine_name(self) -> str:
        return "tesseract"

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(self) -> None:
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd

        loop = asyncio.get_running_loop()
        try:
            version = await loop.run_in_executor(None, pytesseract.get_tesseract_version)
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError(
                "Tesseract not found. Install tesseract-ocr or set TESSERACT_CMD",
                engine=self.engine_name
            ) from e

        self._is_open = True
        self.logger.debug(f"Tesseract {version} ready (lang={self.language})")

    async def recognize(self, image: RasterImage) -> RecognitionResult:
        if not self._is_open:
            raise RecognitionError("Engine used before open()", engine=self.engine_name)

        pil_image = image.to_pil().convert("RGB")
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, self._image_to_data, pil_image)
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise RecognitionError(f"Tesseract failed: {e}", engine=self.engine_name) from e

        return self.parse_tesseract_data(data)

    def _image_to_data(self, pil_image) -> Dict[str, List[Any]]:
        return pytesseract.image_to_data(
            pil_image,
            lang=self.language,
            output_type=pytesseract.Output.DICT,
            timeout=self.process_timeout,
        )

    @staticmethod
    def parse_tesseract_data(data: Dict[str, List[Any]]) -> RecognitionResult:
        """
        Rebuild text and word boxes from ``image_to_data`` output.

        Words on the same (block, paragraph, line) are joined by spaces,
        lines by newlines, and a blank line separates paragraphs, so the
        downstream parser still sees the label's line layout.
        """
        words: List[WordBox] = []
        lines: List[str] = []
        current_line: List[str] = []
        current_key = None
        current_paragraph = None

        for i, raw_text in enumerate(data.get("text", [])):
            text = (raw_text or "").strip()
            try:
                conf = float(data["conf"][i])
            except (TypeError, ValueError):
                conf = -1.0
            if not text or conf < 0:
                continue

            paragraph = (data["block_num"][i], data["par_num"][i])
            key = paragraph + (data["line_num"][i],)

            if key != current_key:
                if current_line:
                    lines.append(" ".join(current_line))
                if current_paragraph is not None and paragraph != current_paragraph:
                    lines.append("")
                current_line = []
                current_key = key
                current_paragraph = paragraph

            current_line.append(text)

            x0 = int(data["left"][i])
            y0 = int(data["top"][i])
            words.append(WordBox(
                text=text,
                bbox=(x0, y0, x0 + int(data["width"][i]), y0 + int(data["height"][i])),
                confidence=conf,
            ))

        if current_line:
            lines.append(" ".join(current_line))

        confidence = sum(w.confidence for w in words) / len(words) if words else 0.0

        return RecognitionResult(
            text="\n".join(lines),
            confidence=confidence,
            words=tuple(words),
        )

    async def close(self) -> None:
        # Each call spawns its own subprocess; nothing is held between calls
        self._is_open = False


EngineFactory = Callable[[], RecognitionEngine]


@asynccontextmanager
async def recognition_session(engine_factory: EngineFactory) -> AsyncIterator[RecognitionEngine]:
    """Open an engine for the duration of the block; always close it."""
    engine = engine_factory()
    try:
        await engine.open()
        yield engine
    finally:
        await engine.close()


async def recognize_image(
    image: RasterImage,
    engine_factory: Optional[EngineFactory] = None,
    timeout: Optional[float] = None,
) -> RecognitionResult:
    """
    Recognize text in a (binarized) raster.

    Args:
        image: Raster to read
        engine_factory: Zero-argument callable returning a RecognitionEngine
                        (default: TesseractEngine)
        timeout: Seconds allowed for the recognize call
                 (default: OCR_RECOGNITION_TIMEOUT)

    Raises:
        RecognitionError: Engine unavailable, failed, or timed out
    """
    logger = logging.getLogger(__name__)
    engine_factory = engine_factory or TesseractEngine
    timeout = timeout or ocr_settings.OCR_RECOGNITION_TIMEOUT

    engine_name = "unknown"
    try:
        async with recognition_session(engine_factory) as engine:
            engine_name = engine.engine_name
            result = await asyncio.wait_for(engine.recognize(image), timeout=timeout)
    except RecognitionError:
        raise
    except asyncio.TimeoutError as e:
        raise RecognitionError(
            f"Recognition timed out after {timeout}s", engine=engine_name
        ) from e
    except Exception as e:
        logger.error(f"Recognition engine '{engine_name}' failed: {e}")
        raise RecognitionError(f"Recognition failed: {e}", engine=engine_name) from e

    logger.info(
        f"Recognized {len(result.words)} words with {engine_name} "
        f"(confidence {result.confidence:.1f})"
    )
    return result
