# ============================================================================
# src/medscan/processors/prescription/medication_parser.py
# ============================================================================
"""
Medication Label Parser

Turns recognized label text into MedicationCandidate records using the
ordered rule tables in constants.medication_patterns.

Flow:
1. Classify the text block (one label vs. a list of prescriptions)
2. For a list, split into sections and parse each one
3. Per block: evaluate field rules first-match-wins, then resolve the
   drug name against what the other fields already consumed
"""

from enum import Enum
from typing import Dict, List, Match, Optional
import logging
import re

from ...constants.medication_patterns import (
    BULLET_LINE,
    COMMONLY_KNOWN_AS,
    FIELD_RULES,
    MIN_SECTION_LENGTH,
    MIXED_CASE_NAME,
    NAME_BEFORE_DOSAGE,
    NAME_LINE_EXCLUDE,
    NAME_LINE_HAS_WORD,
    NAME_LINE_MAX_LENGTH,
    NAME_LINE_MIN_LENGTH,
    NAME_LINE_MIN_LETTER_RATIO,
    NUMBERED_LINE,
    RX_NUMBER,
    SECTION_BOUNDARY,
)
from .candidates import MedicationCandidate

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = re.compile(r"^\W+|\W+$")


class DocumentShape(Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


def classify_document_shape(text: str) -> DocumentShape:
    """
    MULTIPLE when the block looks like a list of prescriptions: two or more
    Rx numbers, a bulleted line, or a numbered line ("2. Metformin").
    """
    if len(RX_NUMBER.findall(text)) > 1:
        return DocumentShape.MULTIPLE
    if BULLET_LINE.search(text) or NUMBERED_LINE.search(text):
        return DocumentShape.MULTIPLE
    return DocumentShape.SINGLE


def split_sections(text: str) -> List[str]:
    """Split a multi-prescription block into per-medication sections."""
    return [part.strip() for part in SECTION_BOUNDARY.split(text) if part and part.strip()]


class MedicationTextParser:
    """
    Field extraction for a single medication block.

    Field values are written once. A later rule for a populated field is
    never evaluated, so a parenthesized dosage "(10 mg)" beats a bare
    "20mg" appearing earlier in the text.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def parse(self, text: str) -> MedicationCandidate:
        values: Dict[str, str] = {}
        matches: Dict[str, Match] = {}

        for field_name, rules in FIELD_RULES.items():
            for rule in rules:
                if field_name in values:
                    break
                match = rule.apply(text)
                if not match:
                    continue
                value = rule.extract(match)
                if value:
                    values[field_name] = value
                    matches[field_name] = match
                    self.logger.debug(f"{field_name}={value!r} via rule '{rule.label}'")

        name = self._resolve_name(text, values, matches.get("dosage"))
        if name:
            values["name"] = name

        return MedicationCandidate.from_fields(values)

    # ------------------------------------------------------------------
    # Drug name
    # ------------------------------------------------------------------

    def _resolve_name(
        self,
        text: str,
        values: Dict[str, str],
        dosage_match: Optional[Match],
    ) -> Optional[str]:
        strategies = (
            ("mixed_case", lambda: self._mixed_case_name(text)),
            ("before_dosage", lambda: self._name_before_dosage(text, dosage_match)),
            ("standalone_line", lambda: self._standalone_line_name(text, values)),
            ("commonly_known_as", lambda: self._commonly_known_name(text)),
        )
        for label, strategy in strategies:
            candidate = strategy()
            if not candidate:
                continue
            if self._is_consumed(candidate, values):
                self.logger.debug(f"Name candidate {candidate!r} ({label}) already used by another field")
                continue
            self.logger.debug(f"name={candidate!r} via '{label}'")
            return candidate
        return None

    @staticmethod
    def _is_consumed(candidate: str, values: Dict[str, str]) -> bool:
        """True if the candidate is really part of another field's text."""
        lowered = candidate.lower()
        for field_name in ("frequency", "route", "instructions"):
            value = values.get(field_name)
            if value and lowered in value.lower():
                return True
        quantity = values.get("quantity")
        return bool(quantity and quantity.lower() in lowered)

    @staticmethod
    def _mixed_case_name(text: str) -> Optional[str]:
        match = MIXED_CASE_NAME.search(text)
        return match.group(1) if match else None

    @staticmethod
    def _name_before_dosage(text: str, dosage_match: Optional[Match]) -> Optional[str]:
        if dosage_match is None:
            return None
        same_line = text[:dosage_match.start()].rsplit("\n", 1)[-1]
        match = NAME_BEFORE_DOSAGE.search(same_line)
        return match.group(1).strip() if match else None

    @staticmethod
    def _standalone_line_name(text: str, values: Dict[str, str]) -> Optional[str]:
        for raw_line in text.split("\n"):
            line = raw_line.strip()
            if not (NAME_LINE_MIN_LENGTH <= len(line) <= NAME_LINE_MAX_LENGTH):
                continue
            if not NAME_LINE_HAS_WORD.search(line):
                continue
            letters = sum(1 for ch in line if ch.isalpha())
            if letters / len(line) <= NAME_LINE_MIN_LETTER_RATIO:
                continue
            if any(pattern.search(line) for pattern in NAME_LINE_EXCLUDE):
                continue

            name = _EDGE_PUNCTUATION.sub("", line)
            if name and not MedicationTextParser._is_consumed(name, values):
                return name
        return None

    @staticmethod
    def _commonly_known_name(text: str) -> Optional[str]:
        match = COMMONLY_KNOWN_AS.search(text)
        return match.group(1) if match else None


def parse_medication_from_text(text: str) -> MedicationCandidate:
    """Parse one medication block. Missing fields are None."""
    return MedicationTextParser().parse(text or "")


def medication_confidence(candidate: MedicationCandidate) -> int:
    """Recompute a candidate's confidence from its populated fields."""
    return MedicationCandidate.from_fields(candidate.to_dict()).confidence


def _has_identity(candidate: MedicationCandidate) -> bool:
    return bool(candidate.name or candidate.dosage or candidate.frequency)


def _is_complete_section(candidate: MedicationCandidate) -> bool:
    return bool(candidate.name and (candidate.dosage or candidate.frequency or candidate.route))


def parse_multiple_medications(text: str) -> List[MedicationCandidate]:
    """
    Parse a text block that may hold one or several medications.

    Args:
        text: Recognized text of one page

    Returns:
        Candidates in document order. Empty when nothing usable was found;
        never a single all-empty candidate.
    """
    text = text or ""
    shape = classify_document_shape(text)
    logger.debug(f"Document shape: {shape.value}")

    if shape is DocumentShape.MULTIPLE:
        sections = [s for s in split_sections(text) if len(s) > MIN_SECTION_LENGTH]
        medications = [
            candidate
            for candidate in (parse_medication_from_text(section) for section in sections)
            if _is_complete_section(candidate)
        ]
        if medications:
            logger.info(f"Parsed {len(medications)} medication(s) from {len(sections)} section(s)")
            return medications
        logger.info("No complete medication sections found, parsing as a single label")

    candidate = parse_medication_from_text(text)
    if _has_identity(candidate):
        return [candidate]
    return []
