# ============================================================================
# src/medscan/constants/patient_patterns.py
# ============================================================================
"""
Pattern tables for patient identity parsing.

Same discipline as the medication tables: ordered rules per field group,
first match wins, populated fields are never overwritten. A rule's extract
function returns a mapping of field -> value (the name rules fill two
fields at once) or None to let the next rule try.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Match, Optional, Pattern
import re

PATIENT_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "phone",
    "address",
    "medical_record_number",
)


@dataclass(frozen=True)
class PatientRule:
    label: str
    fields: tuple  # Fields this rule fills
    pattern: Pattern
    extract: Callable[[Match], Optional[Dict[str, str]]]


def _line_of(match: Match) -> str:
    text = match.string
    start = text.rfind("\n", 0, match.start()) + 1
    end = text.find("\n", match.end())
    return text[start:] if end == -1 else text[start:end]


# ----------------------------------------------------------------------------
# Name
# ----------------------------------------------------------------------------

_NAME_LABEL = (
    r"(?:(?i:patient)(?:[ \t]+(?i:name))?|^[ \t]*(?i:name))"
    r"[ \t]*[:\-][ \t]*"
)
_NAME_WORD = r"[A-Z][A-Za-z'\-]+"


def _last_first(match: Match) -> Dict[str, str]:
    return {"last_name": match.group(1), "first_name": match.group(2)}


def _first_last(match: Match) -> Dict[str, str]:
    return {"first_name": match.group(1), "last_name": match.group(2)}


# ----------------------------------------------------------------------------
# Date of birth
# ----------------------------------------------------------------------------

_DOB_LABEL = (
    r"(?i:\bDOB\b|\bD\.O\.B\.?|date[ \t]+of[ \t]+birth|birth[ \t]*date)"
    r"[ \t]*[:\-]?[ \t]*"
)
_MONTHS = r"(?i:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"


def _dob(match: Match) -> Dict[str, str]:
    return {"date_of_birth": match.group(1).strip()}


# ----------------------------------------------------------------------------
# Phone
# ----------------------------------------------------------------------------

_PHONE_NUMBER = r"(\(?\d{3}\)?[-. ]?\d{3}[-. ]?\d{4})"

# Numbers on these lines belong to someone other than the patient
_NOT_PATIENT_PHONE = re.compile(r"pharmacy|clinic|hospital|fax|prescriber|\bDr\.", re.I)


def _phone(match: Match) -> Optional[Dict[str, str]]:
    if _NOT_PATIENT_PHONE.search(_line_of(match)):
        return None
    return {"phone": match.group(1).strip()}


# ----------------------------------------------------------------------------
# Address
# ----------------------------------------------------------------------------

_ADDRESS_TAIL = re.compile(
    r"\s*\b(?:phone|tel|cell|mobile|MRN|medical\s+record|DOB)\b.*$", re.I
)
_HAS_ZIP = re.compile(r"\b\d{5}(?:-\d{4})?\s*$")
_CITY_STATE_ZIP = re.compile(r"^[ \t]*[A-Za-z .'\-]+,[ \t]*[A-Z]{2}[ \t]+\d{5}(?:-\d{4})?[ \t]*$")


def _address(match: Match) -> Optional[Dict[str, str]]:
    address = _ADDRESS_TAIL.sub("", match.group(1)).strip().rstrip(",")
    if not address:
        return None

    # "123 Main St" on the label line, "Springfield, IL 62701" on the next
    if not _HAS_ZIP.search(address):
        rest = match.string[match.end():].lstrip("\r\n")
        next_line = rest.split("\n", 1)[0]
        if _CITY_STATE_ZIP.match(next_line):
            address = f"{address}, {next_line.strip()}"

    return {"address": address}


# ----------------------------------------------------------------------------
# Medical record number
# ----------------------------------------------------------------------------

def _mrn(match: Match) -> Dict[str, str]:
    return {"medical_record_number": match.group(1)}


PATIENT_RULES: List[PatientRule] = [
    PatientRule(
        "name_last_first",
        ("first_name", "last_name"),
        re.compile(_NAME_LABEL + r"(" + _NAME_WORD + r")[ \t]*,[ \t]*(" + _NAME_WORD + r")", re.M),
        _last_first,
    ),
    PatientRule(
        "name_first_last",
        ("first_name", "last_name"),
        re.compile(
            _NAME_LABEL + r"(" + _NAME_WORD + r")[ \t]+(?:[A-Z]\.?[ \t]+)?(" + _NAME_WORD + r")",
            re.M,
        ),
        _first_last,
    ),
    PatientRule(
        "dob_numeric",
        ("date_of_birth",),
        re.compile(_DOB_LABEL + r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}|\d{4}-\d{1,2}-\d{1,2})"),
        _dob,
    ),
    PatientRule(
        "dob_month_name",
        ("date_of_birth",),
        re.compile(_DOB_LABEL + r"(" + _MONTHS + r"[ \t]+\d{1,2},?[ \t]+\d{4})"),
        _dob,
    ),
    PatientRule(
        "phone_labelled",
        ("phone",),
        re.compile(
            r"(?i:\b(?:phone|tel(?:ephone)?|ph|cell|mobile))\b[ \t]*[:#]?[ \t]*" + _PHONE_NUMBER
        ),
        _phone,
    ),
    PatientRule(
        "address_labelled",
        ("address",),
        re.compile(
            r"^[ \t]*(?:(?i:patient)[ \t]+)?(?i:address|addr\.?)[ \t]*[:\-][ \t]*([^\n]+)",
            re.M,
        ),
        _address,
    ),
    PatientRule(
        "mrn",
        ("medical_record_number",),
        re.compile(
            r"\b(?i:MRN|medical[ \t]+record(?:[ \t]+(?:number|no\.?|#))?)"
            r"[ \t]*[:#]?[ \t]*([A-Za-z0-9\-]*\d[A-Za-z0-9\-]*)"
        ),
        _mrn,
    ),
]
