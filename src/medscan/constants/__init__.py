# ============================================================================
# src/medscan/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .medication_patterns import (
    FieldRule,
    FIELD_RULES,
    CONFIDENCE_WEIGHTS,
    NAME_LINE_EXCLUDE,
)
from .patient_patterns import PATIENT_RULES, PATIENT_FIELDS
