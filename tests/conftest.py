# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

from io import BytesIO
import asyncio

import numpy as np
import pytest
from PIL import Image

from medscan.extractors.recognition import RecognitionEngine, RecognitionResult, WordBox


def encode_png(array: np.ndarray) -> bytes:
    """Encode a uint8 array (H, W) / (H, W, 3) / (H, W, 4) as PNG bytes."""
    buffer = BytesIO()
    Image.fromarray(array.astype(np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeEngine(RecognitionEngine):
    """
    In-memory recognition engine.

    ``queue`` holds one item per recognize() call: a string is returned as
    the recognized text, an exception is raised. The last item repeats.
    Lifecycle calls are recorded so tests can check open/close.
    """

    instances = []

    def __init__(self, queue=None, delay=None):
        super().__init__()
        self.queue = queue if queue is not None else ["Lisinopril 10mg"]
        self.delay = delay
        self.opened = False
        self.closed = False
        self.calls = 0
        FakeEngine.instances.append(self)

    @property
    def engine_name(self) -> str:
        return "fake"

    async def open(self) -> None:
        self.opened = True

    async def recognize(self, image) -> RecognitionResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)

        item = self.queue.pop(0) if len(self.queue) > 1 else self.queue[0]
        if isinstance(item, Exception):
            raise item

        words = tuple(
            WordBox(text=w, bbox=(0, 0, 10, 10), confidence=90.0)
            for w in item.split()
        )
        return RecognitionResult(text=item, confidence=90.0 if words else 0.0, words=words)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_fake_engines():
    FakeEngine.instances.clear()
    yield
    FakeEngine.instances.clear()


@pytest.fixture
def fake_engines():
    """Every FakeEngine created during the test, in creation order."""
    return FakeEngine.instances


@pytest.fixture
def fake_engine_factory():
    """Build an engine factory whose engines share one result queue."""
    def make(items=None, delay=None):
        queue = list(items or ["Lisinopril 10mg"])
        return lambda: FakeEngine(queue=queue, delay=delay)
    return make


@pytest.fixture
def blank_image_bytes():
    return encode_png(np.full((100, 100, 3), 255, dtype=np.uint8))


@pytest.fixture
def single_label_text():
    return "Lisinopril 10mg\nTake 1 tablet by mouth once daily\nQty: 30\nRefills: 2"


@pytest.fixture
def multi_rx_text():
    return (
        "Rx# 1234567 Lisinopril 10mg\n"
        "Take 1 tablet by mouth once daily\n"
        "Rx# 7654321 Metformin 500mg\n"
        "Take 1 tablet by mouth twice daily\n"
    )


@pytest.fixture
def patient_header_text():
    return (
        "Patient: Smith, John\n"
        "DOB: 03/15/1965\n"
        "Phone: (555) 123-4567\n"
        "Address: 123 Main St\n"
        "Springfield, IL 62701\n"
        "MRN: A123456\n"
    )


@pytest.fixture
def sample_pdf(tmp_path):
    """Two-page PDF built with reportlab."""
    from reportlab.pdfgen import canvas
    from reportlab.lib.pagesizes import letter

    pdf_path = tmp_path / "prescriptions.pdf"
    c = canvas.Canvas(str(pdf_path), pagesize=letter)
    c.drawString(100, 750, "Patient: John Smith")
    c.drawString(100, 700, "Lisinopril 10mg")
    c.showPage()
    c.drawString(100, 750, "Metformin 500mg")
    c.showPage()
    c.save()
    return pdf_path
