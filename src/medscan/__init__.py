# ============================================================================
# src/medscan/__init__.py
# ============================================================================
"""
medscan - medication label and prescription scanning engine.

Turns a photographed label, printout or PDF into structured medication and
patient candidates:

    image/PDF -> normalize -> best binarization -> OCR -> parsed records
"""

__version__ = "0.1.0"

from .core.scan_pipeline import (
    OCRResult,
    ScanResult,
    SCAN_FAILURE_MESSAGE,
    parse_scanned_pages,
    run_ocr,
    scan_document,
)
from .processors.prescription import (
    MedicationCandidate,
    PatientIdentityCandidate,
    parse_medication_from_text,
    parse_multiple_medications,
    parse_patient_info_from_text,
)
