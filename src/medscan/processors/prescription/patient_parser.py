# ============================================================================
# src/medscan/processors/prescription/patient_parser.py
# ============================================================================
"""
Patient identity parsing from label / printout text.
"""

from typing import Dict, Optional
import logging

from ...constants.patient_patterns import PATIENT_RULES
from .candidates import PatientIdentityCandidate

logger = logging.getLogger(__name__)


def parse_patient_info_from_text(text: str) -> Optional[PatientIdentityCandidate]:
    """
    Extract patient identity fields.

    Rules run in table order. A rule is skipped when any of the fields it
    fills is already populated, so the first match for a field wins.

    Returns:
        PatientIdentityCandidate, or None when no field was found
    """
    if not text:
        return None

    values: Dict[str, str] = {}
    for rule in PATIENT_RULES:
        if any(name in values for name in rule.fields):
            continue
        for match in rule.pattern.finditer(text):
            extracted = rule.extract(match)
            if extracted:
                values.update({k: v for k, v in extracted.items() if v})
                logger.debug(f"Patient {', '.join(extracted)} via rule '{rule.label}'")
                break

    if not values:
        return None

    candidate = PatientIdentityCandidate.from_fields(values)
    logger.info(f"Patient identity: {len(values)} field(s) found")
    return candidate
