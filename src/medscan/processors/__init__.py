# src/medscan/processors/__init__.py
"""
Text Processors Module

Turns recognized text into structured candidate records:
- Medication labels and prescription lists
- Patient identity blocks
"""

from .prescription import (
    MedicationCandidate,
    PatientIdentityCandidate,
    parse_medication_from_text,
    parse_multiple_medications,
    parse_patient_info_from_text,
)

__all__ = [
    "MedicationCandidate",
    "PatientIdentityCandidate",
    "parse_medication_from_text",
    "parse_multiple_medications",
    "parse_patient_info_from_text",
]
