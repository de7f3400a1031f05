# ============================================================================
# src/medscan/processors/prescription/__init__.py
# ============================================================================
"""
Prescription label parsing module.
"""

from .candidates import MedicationCandidate, PatientIdentityCandidate
from .medication_parser import (
    DocumentShape,
    classify_document_shape,
    medication_confidence,
    parse_medication_from_text,
    parse_multiple_medications,
    split_sections,
)
from .patient_parser import parse_patient_info_from_text

__all__ = [
    'MedicationCandidate',
    'PatientIdentityCandidate',
    'DocumentShape',
    'classify_document_shape',
    'medication_confidence',
    'parse_medication_from_text',
    'parse_multiple_medications',
    'split_sections',
    'parse_patient_info_from_text',
]
