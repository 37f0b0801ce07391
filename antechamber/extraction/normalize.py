"""Canonical formatting for phone numbers, addresses and company names."""

from __future__ import annotations

import re
from typing import Any

US_STATE_ABBREVS = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND",
    "ohio": "OH", "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA",
    "rhode island": "RI", "south carolina": "SC", "south dakota": "SD",
    "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
}

STREET_ABBREVS = {
    "street": "St", "avenue": "Ave", "boulevard": "Blvd", "drive": "Dr",
    "lane": "Ln", "road": "Rd", "court": "Ct", "place": "Pl",
    "circle": "Cir", "trail": "Trl", "way": "Way", "highway": "Hwy",
    "parkway": "Pkwy", "terrace": "Ter", "square": "Sq",
}

COMPANY_SUFFIXES = [
    "Inc.", "Inc", "LLC", "Ltd.", "Ltd", "Corp.", "Corp",
    "Co.", "Co", "LP", "LLP", "PLC", "GmbH", "S.A.",
    "AG", "N.V.", "Pty", "Pty.", "P.C.",
]

# Longer names first so "west virginia" wins over "virginia".
_STATE_PATTERNS = [
    (re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE), abbr)
    for name, abbr in sorted(US_STATE_ABBREVS.items(), key=lambda kv: -len(kv[0]))
]
_STREET_PATTERNS = [
    (re.compile(rf"\b{name}\b", re.IGNORECASE), abbr)
    for name, abbr in STREET_ABBREVS.items()
]


def normalize_phone(value: Any) -> str:
    """Format US numbers as ``+1 (XXX) XXX-XXXX``; others are only trimmed."""
    if not isinstance(value, str) or not value.strip():
        return ""
    trimmed = value.strip()
    digits = re.sub(r"\D", "", trimmed)

    if len(digits) == 11 and digits[0] == "1":
        digits = digits[1:]
    if len(digits) == 10:
        return f"+1 ({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return trimmed


def normalize_company_name(value: Any) -> str:
    """Title-case the name while keeping a legal suffix as written in the list."""
    if not isinstance(value, str) or not value.strip():
        return ""
    base = value.strip()

    suffix = ""
    for candidate in COMPANY_SUFFIXES:
        pattern = re.compile(rf"\s+{re.escape(candidate)}$", re.IGNORECASE)
        if pattern.search(base):
            suffix = " " + candidate
            base = pattern.sub("", base)
            break

    words = [w[0].upper() + w[1:].lower() for w in base.split() if w]
    return " ".join(words) + suffix


def normalize_address(value: Any) -> str:
    """Collapse whitespace and abbreviate street types and US states."""
    if not isinstance(value, str) or not value.strip():
        return ""
    result = re.sub(r"\s+", " ", value.strip())
    for pattern, abbr in _STREET_PATTERNS:
        result = pattern.sub(abbr, result)
    for pattern, abbr in _STATE_PATTERNS:
        result = pattern.sub(abbr, result)
    return result


def normalize_field_value(key: str, value: Any) -> Any:
    """Pick a normalizer from the field key; non-strings pass through."""
    if not isinstance(value, str):
        return value
    if re.search(r"phone|tel|fax", key, re.IGNORECASE):
        return normalize_phone(value)
    if re.search(r"address|location", key, re.IGNORECASE):
        return normalize_address(value)
    if re.search(r"company.?name", key, re.IGNORECASE):
        return normalize_company_name(value)
    return value
