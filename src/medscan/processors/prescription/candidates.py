# ============================================================================
# src/medscan/processors/prescription/candidates.py
# ============================================================================
"""
Candidate records produced by the structured extractor.

Every field is optional; None means "not found". Candidates are frozen so
a record handed to a caller cannot be changed behind its back.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

from ...constants.medication_patterns import CONFIDENCE_WEIGHTS
from ...constants.patient_patterns import PATIENT_FIELDS
from ...utils.text_normalizer import (
    convert_date_to_input_format,
    format_phone_number,
    parse_address,
)

MEDICATION_FIELDS = (
    "name",
    "dosage",
    "frequency",
    "route",
    "prescriber",
    "quantity",
    "refills",
    "instructions",
)


def weighted_confidence(present: List[str], weights: Dict[str, int]) -> int:
    """
    Confidence from the populated field set.

    The score is normalised by the weights of the fields that are present,
    so any non-empty record scores 100 and an empty one 0.
    """
    score = sum(weights.get(name, 0) for name in present)
    total = sum(weights.get(name, 0) for name in present)
    if total == 0:
        return 0
    return round(100 * score / total)


@dataclass(frozen=True)
class MedicationCandidate:
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    route: Optional[str] = None
    prescriber: Optional[str] = None
    quantity: Optional[str] = None
    refills: Optional[str] = None
    instructions: Optional[str] = None
    confidence: int = 0

    @classmethod
    def from_fields(cls, values: Dict[str, str]) -> "MedicationCandidate":
        """Build a candidate and derive its confidence from ``values``."""
        present = [name for name in MEDICATION_FIELDS if values.get(name)]
        return cls(
            **{name: values.get(name) for name in MEDICATION_FIELDS},
            confidence=weighted_confidence(present, CONFIDENCE_WEIGHTS),
        )

    def populated_fields(self) -> List[str]:
        return [name for name in MEDICATION_FIELDS if getattr(self, name)]

    def to_dict(self) -> Dict[str, Any]:
        result = {name: getattr(self, name) for name in self.populated_fields()}
        result["confidence"] = self.confidence
        return result


@dataclass(frozen=True)
class PatientIdentityCandidate:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    medical_record_number: Optional[str] = None
    confidence: int = 0

    @classmethod
    def from_fields(cls, values: Dict[str, str]) -> "PatientIdentityCandidate":
        present = [name for name in PATIENT_FIELDS if values.get(name)]
        equal_weights = {name: 1 for name in PATIENT_FIELDS}
        return cls(
            **{name: values.get(name) for name in PATIENT_FIELDS},
            confidence=weighted_confidence(present, equal_weights),
        )

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in PATIENT_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "confidence" and getattr(self, f.name)
        }
        result["confidence"] = self.confidence
        return result

    def to_form_values(self) -> Dict[str, str]:
        """
        Flatten the identity into form-ready strings.

        Dates become YYYY-MM-DD, phones "(555) 123-4567" and the address is
        split into street / city / state / zip. Missing values are "".
        """
        address = parse_address(self.address or "")
        return {
            "first_name": self.first_name or "",
            "last_name": self.last_name or "",
            "date_of_birth": convert_date_to_input_format(self.date_of_birth or ""),
            "phone": format_phone_number(self.phone or ""),
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "zip": address.zip,
            "medical_record_number": self.medical_record_number or "",
        }
