# ============================================================================
# src/medscan/constants/medication_patterns.py
# ============================================================================
"""
Pattern tables for medication label parsing.

Each field has an ordered list of FieldRule entries. The parser tries them
in order and keeps the first non-empty value; a populated field is never
overwritten by a later rule. Keeping the cascade as data lets each rule be
tested on its own.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Match, Optional, Pattern
import re


@dataclass(frozen=True)
class FieldRule:
    """One pattern and how to turn its match into a field value."""
    label: str
    pattern: Pattern
    extract: Callable[[Match], Optional[str]]

    def apply(self, text: str) -> Optional[Match]:
        return self.pattern.search(text)


def _whole(match: Match) -> Optional[str]:
    return match.group(0).strip() or None


def _group(index: int) -> Callable[[Match], Optional[str]]:
    def extract(match: Match) -> Optional[str]:
        value = match.group(index)
        return value.strip() if value and value.strip() else None
    return extract


def _dosage(match: Match) -> Optional[str]:
    return f"{match.group(1)} {match.group(2)}"


def _constant(value: str) -> Callable[[Match], Optional[str]]:
    return lambda match: value


DOSAGE_UNITS = r"(mg|mcg|g|ml|units?)"

DOSAGE_RULES: List[FieldRule] = [
    FieldRule(
        "parenthesized",
        re.compile(r"\((\d+(?:\.\d+)?)\s*" + DOSAGE_UNITS + r"\)", re.I),
        _dosage,
    ),
    FieldRule(
        "bare",
        re.compile(r"(\d+(?:\.\d+)?)\s*" + DOSAGE_UNITS + r"\b", re.I),
        _dosage,
    ),
]

FREQUENCY_RULES: List[FieldRule] = [
    # "Take 1 tablet by mouth once daily" - the whole directions clause
    FieldRule(
        "take_tablet",
        re.compile(r"take\s+\d+\s+tablets?\b[^.\n]*", re.I),
        _whole,
    ),
    FieldRule(
        "times_per_day",
        re.compile(
            r"\b(?:once|twice|three\s+times?)\s+"
            r"(?:daily|per\s+day|a\s+day|in\s+the\s+morning|in\s+the\s+evening)",
            re.I,
        ),
        _whole,
    ),
    FieldRule(
        "abbreviation",
        re.compile(r"\b(?:QD|BID|TID|QID|Q\d+H)\b", re.I),
        _whole,
    ),
    FieldRule(
        "time_of_day",
        re.compile(r"(?:in\s+the|every)\s+(?:morning|evening|afternoon|night)", re.I),
        _whole,
    ),
]

ROUTE_RULES: List[FieldRule] = [
    FieldRule(
        "by_route",
        re.compile(r"by\s+(mouth|injection|inhalation)", re.I),
        _group(1),
    ),
    FieldRule(
        "route_word",
        re.compile(
            r"\b(oral|topical|injection|IV|IM|sublingual|transdermal|"
            r"inhalation|ophthalmic|otic)\b",
            re.I,
        ),
        _group(1),
    ),
]

PRESCRIBER_RULES: List[FieldRule] = [
    FieldRule(
        "doctor_title",
        re.compile(r"(?i:Dr\.|Doctor)[ \t]+(?:[A-Z]\.[ \t]*)?[A-Z][a-z]+[ \t]+[A-Z][a-z]+"),
        _whole,
    ),
    FieldRule(
        "credential_suffix",
        re.compile(
            r"[A-Z][a-z]+[ \t]+[A-Z]\.?[ \t]+[A-Z][a-z]+[ \t]+"
            r"(?:MD|DO|RPh|NP|PA|NU|PharmD)\b"
        ),
        _whole,
    ),
]

QUANTITY_RULES: List[FieldRule] = [
    FieldRule(
        "qty_label",
        re.compile(r"(?:qty|quantity)\s*:?\s*(\d+)", re.I),
        _group(1),
    ),
]

REFILLS_RULES: List[FieldRule] = [
    FieldRule(
        "no_refills",
        re.compile(r"\bno\s+refills?\b", re.I),
        _constant("0"),
    ),
    FieldRule(
        "refills_label",
        re.compile(r"refills?\s*:?\s*(\d+|remaining)", re.I),
        _group(1),
    ),
]

INSTRUCTIONS_RULES: List[FieldRule] = [
    FieldRule(
        "take_sentence",
        re.compile(r"take\s+\d+\s+tablet[^.]*\.", re.I),
        _whole,
    ),
]

# Evaluation order. "name" is resolved afterwards because its strategies
# depend on what the other fields consumed.
FIELD_RULES: Dict[str, List[FieldRule]] = {
    "dosage": DOSAGE_RULES,
    "frequency": FREQUENCY_RULES,
    "route": ROUTE_RULES,
    "prescriber": PRESCRIBER_RULES,
    "quantity": QUANTITY_RULES,
    "refills": REFILLS_RULES,
    "instructions": INSTRUCTIONS_RULES,
}

# ----------------------------------------------------------------------------
# Drug name
# ----------------------------------------------------------------------------

# Tall-man lettering, e.g. "cloNIDine", "hydrOXYzine"
MIXED_CASE_NAME = re.compile(r"\b([a-z]+[A-Z][A-Za-z]+)\b")

# Capitalized words (same line) right before the dosage: "Lisinopril 10mg"
NAME_BEFORE_DOSAGE = re.compile(r"([A-Z][A-Za-z]+(?:[ \t]+[A-Z][A-Za-z]+){0,2})\s*$")

COMMONLY_KNOWN_AS = re.compile(r"commonly\s+known\s+as\s+([A-Za-z]+)", re.I)

# Standalone-line fallback filters
NAME_LINE_MIN_LENGTH = 3
NAME_LINE_MAX_LENGTH = 40
NAME_LINE_MIN_LETTER_RATIO = 0.6
NAME_LINE_HAS_WORD = re.compile(r"[A-Za-z]{3,}")

NAME_LINE_EXCLUDE: List[Pattern] = [
    re.compile(r"pharmacy", re.I),
    re.compile(r"hospital", re.I),
    re.compile(r"clinic", re.I),
    re.compile(r"research", re.I),
    re.compile(r"children", re.I),
    re.compile(r"\d{3}[-\s]?\d{3}[-\s]?\d{4}"),
    re.compile(
        r"^\d+\s+[A-Z][a-z]+\s+(?:Place|Street|St|Road|Rd|Ave|Avenue|Blvd|Dr|Drive|Lane|Ln|Way)\b",
        re.I,
    ),
    re.compile(r"Rx\s*[:#]?\s*\d+", re.I),
    re.compile(r"\bwritten\b", re.I),
    re.compile(r"\bfilled\b", re.I),
    re.compile(r"\btest\b", re.I),
    re.compile(r"patient", re.I),
    re.compile(r"discard", re.I),
    re.compile(r"commonly\s+known", re.I),
    re.compile(r"no\s+refills", re.I),
    re.compile(r"^take\s+\d+", re.I),
    re.compile(r"^by\s+mouth", re.I),
    re.compile(r"\bMRN\b", re.I),
    re.compile(r"\bDOB\b|date\s+of\s+birth", re.I),
    re.compile(r"\b(?:qty|quantity|refills?)\b", re.I),
    re.compile(r"^(?:Dr\.|Doctor)\s", re.I),
    re.compile(r"\b(?:exp|expires|expiration|lot|NDC)\b", re.I),
]

# ----------------------------------------------------------------------------
# Confidence
# ----------------------------------------------------------------------------

# Weights sum to 100. Prescriber and refills do not count.
CONFIDENCE_WEIGHTS: Dict[str, int] = {
    "name": 30,
    "dosage": 25,
    "frequency": 20,
    "route": 10,
    "quantity": 10,
    "instructions": 5,
}

# ----------------------------------------------------------------------------
# Document shape
# ----------------------------------------------------------------------------

RX_NUMBER = re.compile(r"Rx\s*[:#]?\s*\d{5,}", re.I)
BULLET_LINE = re.compile(r"^[ \t]*[*•▪‣·]\s", re.M)
NUMBERED_LINE = re.compile(r"^[ \t]*\d+\.\s+[A-Z]", re.M)

# Section boundaries for multi-medication documents. Markers are consumed;
# the Rx number stays with its section. A single blank line can sit between
# a drug line and its directions, so only a run of two splits.
SECTION_BOUNDARY = re.compile(
    r"\n[ \t]*\n[ \t]*\n"                    # two or more blank lines
    r"|^[ \t]*\d+\.\s+(?=[A-Z])"              # "2. Metformin"
    r"|^[ \t]*[*•▪‣·]\s+"                     # bullets
    r"|^(?=[ \t]*(?i:Rx)\s*[:#]?\s*\d{5,})",  # "Rx# 1234567 ..."
    re.M,
)
MIN_SECTION_LENGTH = 20
