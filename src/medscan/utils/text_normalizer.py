# ============================================================================
# src/medscan/utils/text_normalizer.py
# ============================================================================
"""
Text Normalization Utilities

Turns raw scanned field values into form-ready values:
- Dates to ISO (YYYY-MM-DD)
- Phone numbers to "(555) 123-4567"
- Free-text addresses to street / city / state / ZIP
"""

from dataclasses import dataclass
import re

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})$")
_PHONE_GROUPS = re.compile(r"^(\d{0,3})(\d{0,3})(\d{0,4})$")

# Two-digit years above this are 19xx, the rest 20xx
TWO_DIGIT_YEAR_PIVOT = 30

_ADDRESS_LEAK = re.compile(r"(?:Phone|MRN|Medical\s+Record).*$", re.I)
_FULL_ADDRESS = re.compile(r"^([^,]+),\s*([^,]+),\s*([A-Z]{2})\s*(\d{5}(?:-\d{4})?)?")
_TRAILING_ZIP = re.compile(r"\b(\d{5}(?:-\d{4})?)\s*$")
_TRAILING_STATE = re.compile(r"\b([A-Z]{2})\s*,?\s*$")


@dataclass
class AddressParts:
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


def convert_date_to_input_format(date_str: str) -> str:
    """
    Convert MM/DD/YYYY (or MM-DD-YY) to YYYY-MM-DD.

    ISO input is returned unchanged; anything unrecognized gives "".
    """
    if not date_str:
        return ""
    if _ISO_DATE.match(date_str):
        return date_str

    match = _US_DATE.match(date_str)
    if not match:
        return ""

    month, day, year = match.groups()
    if len(year) == 2:
        year = f"19{year}" if int(year) > TWO_DIGIT_YEAR_PIVOT else f"20{year}"

    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def format_phone_number(value: str) -> str:
    """Format up to ten digits as (xxx) xxx-xxxx; longer input is left as is."""
    digits = re.sub(r"\D", "", value or "")
    match = _PHONE_GROUPS.match(digits)
    if not match:
        return value

    parts = [p for p in match.groups() if p]
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return f"({parts[0]}) {parts[1]}"
    return f"({parts[0]}) {parts[1]}-{parts[2]}"


def parse_address(full_address: str) -> AddressParts:
    """
    Split a scanned address into its parts.

    "123 Main St, Springfield, IL 62701" splits cleanly. Otherwise ZIP and
    state are peeled off the end and whatever is left becomes the street
    (and city, if a comma separates them).
    """
    result = AddressParts()
    if not full_address:
        return result

    cleaned = _ADDRESS_LEAK.sub("", full_address).strip()

    match = _FULL_ADDRESS.match(cleaned)
    if match:
        result.street = match.group(1).strip()
        result.city = match.group(2).strip()
        result.state = match.group(3).strip()
        result.zip = (match.group(4) or "").strip()
        return result

    zip_match = _TRAILING_ZIP.search(cleaned)
    if not zip_match:
        result.street = cleaned
        return result

    result.zip = zip_match.group(1)
    without_zip = cleaned[:zip_match.start()].strip()

    state_match = _TRAILING_STATE.search(without_zip)
    if not state_match:
        result.street = without_zip
        return result

    result.state = state_match.group(1)
    without_state = without_zip[:state_match.start()].strip()

    parts = [p.strip() for p in without_state.split(",")]
    if len(parts) >= 2:
        result.street = ", ".join(parts[:-1])
        result.city = parts[-1]
    else:
        result.street = without_state

    return result
