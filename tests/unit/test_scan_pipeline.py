# ============================================================================
# FILE: tests/unit/test_scan_pipeline.py
# ============================================================================
"""
Unit tests for the scan pipeline (image and multi-page PDF)
"""

import asyncio
import logging

import pytest

from medscan.core.scan_pipeline import (
    SCAN_FAILURE_MESSAGE,
    parse_scanned_pages,
    run_ocr,
    scan_document,
)
from medscan.extractors.pdf_renderer import convert_pdf_to_images, is_pdf
from medscan.preprocessors.strategy_selector import PreprocessingStrategy
from medscan.utils.exceptions import DecodeError, RecognitionError
from medscan.utils.logging import ContextFilter


@pytest.fixture
def pdf_bytes(sample_pdf):
    return sample_pdf.read_bytes()


class TestRunOCR:

    @pytest.mark.asyncio
    async def test_blurry_image_still_recognized(self, blank_image_bytes, fake_engine_factory):
        result = await run_ocr(blank_image_bytes, engine_factory=fake_engine_factory(["Aspirin 81mg"]))

        assert result.text == "Aspirin 81mg"
        assert result.is_blurry is True
        assert result.preprocessing_strategy is PreprocessingStrategy.STANDARD
        assert result.preview_image_width == 200
        assert result.preview_image_height == 200

    @pytest.mark.asyncio
    async def test_to_dict(self, blank_image_bytes, fake_engine_factory):
        result = await run_ocr(blank_image_bytes, engine_factory=fake_engine_factory(["Aspirin"]))
        data = result.to_dict()

        assert data["preprocessing_strategy"] == "standard"
        assert data["preprocessed_image"].startswith("data:image/png;base64,")
        assert data["words"][0]["text"] == "Aspirin"
        assert "preview_image" not in result.to_dict(include_images=False)

    @pytest.mark.asyncio
    async def test_engine_closed_after_each_call(self, blank_image_bytes, fake_engine_factory, fake_engines):
        factory = fake_engine_factory(["Aspirin"])
        await run_ocr(blank_image_bytes, engine_factory=factory)
        await run_ocr(blank_image_bytes, engine_factory=factory)

        assert len(fake_engines) == 2
        assert all(engine.closed for engine in fake_engines)


class TestScanImage:

    @pytest.mark.asyncio
    async def test_single_label(self, blank_image_bytes, fake_engine_factory, single_label_text):
        result = await scan_document(
            blank_image_bytes, engine_factory=fake_engine_factory([single_label_text])
        )

        assert len(result.pages) == 1
        assert [m.name for m in result.medications] == ["Lisinopril"]
        assert result.patient is None
        assert result.skipped_pages == []

    @pytest.mark.asyncio
    async def test_patient_from_image(self, blank_image_bytes, fake_engine_factory, patient_header_text):
        result = await scan_document(
            blank_image_bytes, engine_factory=fake_engine_factory([patient_header_text])
        )
        assert result.patient.last_name == "Smith"

    @pytest.mark.asyncio
    async def test_undecodable_image(self, fake_engine_factory):
        with pytest.raises(DecodeError):
            await scan_document(b"not an image", engine_factory=fake_engine_factory())

    @pytest.mark.asyncio
    async def test_undecodable_image_skipped(self, fake_engine_factory):
        result = await scan_document(
            b"not an image", engine_factory=fake_engine_factory(), skip_failed_pages=True
        )
        assert result.skipped_pages == [0]
        assert result.pages == []


class TestScanPDF:

    def test_pdf_detection(self, pdf_bytes, blank_image_bytes):
        assert is_pdf(pdf_bytes)
        assert not is_pdf(blank_image_bytes)

    def test_render_pages(self, sample_pdf):
        images = convert_pdf_to_images(sample_pdf, dpi=72)
        assert len(images) == 2
        assert images[0].size == (612, 792)

    def test_invalid_pdf(self):
        with pytest.raises(DecodeError):
            convert_pdf_to_images(b"%PDF-1.4 truncated")

    @pytest.mark.asyncio
    async def test_pages_in_order(self, pdf_bytes, fake_engine_factory):
        factory = fake_engine_factory([
            "Patient: John Smith\nLisinopril 10mg",
            "Metformin 500mg",
        ])
        result = await scan_document(pdf_bytes, engine_factory=factory)

        assert len(result.pages) == 2
        assert [m.name for m in result.medications] == ["Lisinopril", "Metformin"]
        assert result.patient.first_name == "John"
        assert result.patient.last_name == "Smith"

    @pytest.mark.asyncio
    async def test_patient_only_from_first_page(self, pdf_bytes, fake_engine_factory):
        factory = fake_engine_factory([
            "Lisinopril 10mg",
            "Patient: Jane Doe\nMetformin 500mg",
        ])
        result = await scan_document(pdf_bytes, engine_factory=factory)

        assert result.patient is None
        assert len(result.medications) == 2

    @pytest.mark.asyncio
    async def test_page_failure_aborts(self, pdf_bytes, fake_engine_factory):
        factory = fake_engine_factory([
            "Lisinopril 10mg",
            RecognitionError("engine crashed", engine="fake"),
        ])
        with pytest.raises(RecognitionError):
            await scan_document(pdf_bytes, engine_factory=factory, skip_failed_pages=False)

    @pytest.mark.asyncio
    async def test_page_failure_skipped(self, pdf_bytes, fake_engine_factory):
        factory = fake_engine_factory([
            RecognitionError("engine crashed", engine="fake"),
            "Metformin 500mg",
        ])
        result = await scan_document(pdf_bytes, engine_factory=factory, skip_failed_pages=True)

        assert result.skipped_pages == [0]
        assert len(result.pages) == 1
        assert [m.name for m in result.medications] == ["Metformin"]
        # Page 0 is the only source of identity
        assert result.patient is None

    @pytest.mark.asyncio
    async def test_scan_result_to_dict(self, pdf_bytes, fake_engine_factory):
        result = await scan_document(pdf_bytes, engine_factory=fake_engine_factory(["Lisinopril 10mg"]))
        data = result.to_dict()

        assert len(data["pages"]) == 2
        assert "preview_image" not in data["pages"][0]
        assert data["medications"][0] == {"name": "Lisinopril", "dosage": "10 mg", "confidence": 100}
        assert data["patient"] is None


class TestConcurrentScans:

    @pytest.mark.asyncio
    async def test_page_context_stays_with_its_scan(self, pdf_bytes, fake_engine_factory, caplog):
        factory_before = logging.getLogRecordFactory()
        caplog.handler.addFilter(ContextFilter())
        fast = fake_engine_factory(["Lisinopril 10mg"], delay=0.01)
        slow = fake_engine_factory(["Metformin 500mg"], delay=0.05)

        with caplog.at_level(logging.INFO, logger="medscan.core.scan_pipeline"):
            first, second = await asyncio.gather(
                scan_document(pdf_bytes, engine_factory=fast),
                scan_document(pdf_bytes, engine_factory=slow),
            )

        assert [m.name for m in first.medications] == ["Lisinopril", "Lisinopril"]
        assert [m.name for m in second.medications] == ["Metformin", "Metformin"]

        page_records = [r for r in caplog.records if r.getMessage().startswith("Page ")]
        assert len(page_records) == 4
        for record in page_records:
            assert record.getMessage().startswith(f"Page {record.page}:")

        # Nothing leaks once both scans are done
        assert logging.getLogRecordFactory() is factory_before
        fresh = logging.makeLogRecord({"msg": "later"})
        ContextFilter().filter(fresh)
        assert not hasattr(fresh, "page")


class TestParseScannedPages:

    def test_medications_from_all_pages(self):
        medications, patient = parse_scanned_pages([
            "Patient: Smith, John\nLisinopril 10mg",
            "Metformin 500mg",
        ])

        assert [m.name for m in medications] == ["Lisinopril", "Metformin"]
        assert patient.last_name == "Smith"

    def test_no_pages(self):
        assert parse_scanned_pages([]) == ([], None)

    def test_failure_message(self):
        assert SCAN_FAILURE_MESSAGE == "Failed to extract text from image"
