# ============================================================================
# src/medscan/enrichers/ndc_lookup.py
# ============================================================================
"""
NDC Barcode Lookup

A National Drug Code is printed with hyphens in one of several
segmentations (4-4-2, 5-3-2, 5-4-1), but barcodes carry bare digits. We
generate every plausible segmentation and ask the openFDA NDC directory
for each in turn.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import re

from ..config import lookup_settings
from ..processors.prescription.candidates import MedicationCandidate
from .registry_client import RegistryClient

FDA_MEDICATION_CONFIDENCE = 75


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def convert_to_ndc_format(code: str) -> List[str]:
    """
    Candidate hyphenated NDC product codes for a scanned barcode.

    Args:
        code: Scanned value, with or without hyphens

    Returns:
        Candidate "labeler-product[-package]" strings in lookup order,
        without duplicates
    """
    digits = re.sub(r"\D", "", code)
    formats: List[str] = []

    if "-" in code:
        segments = code.split("-")
        if len(segments) >= 2:
            formats.append(f"{segments[0]}-{segments[1]}")
        if len(segments) >= 3:
            formats.append(code)

    if len(digits) == 11:
        formats.extend([
            f"{digits[:4]}-{digits[4:8]}-{digits[8:10]}",
            f"{digits[:4]}-{digits[4:8]}",
            f"{digits[:5]}-{digits[5:8]}-{digits[8:10]}",
            f"{digits[:5]}-{digits[5:8]}",
            f"{digits[:5]}-{digits[5:9]}-{digits[9:10]}",
            f"{digits[:5]}-{digits[5:9]}",
        ])

    if len(digits) == 10:
        padded = "0" + digits
        formats.extend([
            f"{padded[:4]}-{padded[4:8]}-{padded[8:10]}",
            f"{padded[:5]}-{padded[5:8]}-{padded[8:10]}",
        ])

    if len(digits) == 8:
        formats.append(f"{digits[:4]}-{digits[4:8]}")
    if len(digits) == 9:
        formats.append(f"{digits[:5]}-{digits[5:9]}")

    stripped = digits.lstrip("0")
    if len(stripped) == 8:
        formats.extend([
            f"{stripped[:4]}-{stripped[4:8]}",
            f"{stripped[:5]}-{stripped[5:8]}",
        ])

    return _dedupe(formats)


@dataclass
class ActiveIngredient:
    name: str = ""
    strength: str = ""


@dataclass
class FDAMedicationData:
    """The subset of an openFDA NDC record we use."""
    brand_name: Optional[str] = None
    generic_name: Optional[str] = None
    dosage_form: Optional[str] = None
    route: List[str] = field(default_factory=list)
    active_ingredients: List[ActiveIngredient] = field(default_factory=list)
    product_ndc: Optional[str] = None

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "FDAMedicationData":
        ingredients = [
            ActiveIngredient(name=item.get("name", ""), strength=item.get("strength", ""))
            for item in record.get("active_ingredients") or []
            if isinstance(item, dict)
        ]
        return cls(
            brand_name=record.get("brand_name"),
            generic_name=record.get("generic_name"),
            dosage_form=record.get("dosage_form"),
            route=list(record.get("route") or []),
            active_ingredients=ingredients,
            product_ndc=record.get("product_ndc"),
        )


class NDCLookupClient(RegistryClient):
    """openFDA NDC directory client."""

    def __init__(self, endpoint: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.endpoint = endpoint or lookup_settings.FDA_NDC_ENDPOINT

    async def lookup_medication_by_ndc(self, code: str) -> Optional[FDAMedicationData]:
        """
        Look up a scanned NDC barcode.

        Returns:
            First matching FDA record, or None if no segmentation matched
        """
        formats = convert_to_ndc_format(code)
        self.logger.info(f"Looking up NDC {code!r} as {formats}")

        async with self._session_scope() as session:
            for ndc in formats:
                data = await self._fetch_json(
                    session,
                    self.endpoint,
                    params={"search": f'product_ndc:"{ndc}"', "limit": "1"},
                )
                results = (data or {}).get("results") or []
                if results:
                    self.logger.info(f"NDC match with format {ndc}")
                    return FDAMedicationData.from_api(results[0])
                self.logger.debug(f"No FDA record for {ndc}")

        self.logger.info(f"No medication found for NDC {code!r}")
        return None


async def lookup_medication_by_ndc(code: str) -> Optional[FDAMedicationData]:
    """Convenience function using default settings."""
    return await NDCLookupClient().lookup_medication_by_ndc(code)


def convert_fda_to_medication(data: FDAMedicationData) -> MedicationCandidate:
    """
    Map an FDA record onto a medication candidate.

    Registry records carry no directions, so frequency falls back to
    "Once daily" and the dosage form stands in for instructions.
    """
    strength = data.active_ingredients[0].strength if data.active_ingredients else ""
    return MedicationCandidate(
        name=data.brand_name or data.generic_name or "Unknown Medication",
        dosage=strength or None,
        route=data.route[0] if data.route else "Oral",
        frequency="Once daily",
        instructions=data.dosage_form or "Medication",
        confidence=FDA_MEDICATION_CONFIDENCE,
    )
