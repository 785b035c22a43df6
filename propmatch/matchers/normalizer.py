"""
Canonicalization of free-text street addresses and property names.

None of these functions raise: missing or malformed input degrades to "".
"""
import re
from typing import Optional

from propmatch.config import PLACEHOLDER_ADDRESSES

STREET_TYPES = {
    "street": "st",
    "avenue": "ave",
    "boulevard": "blvd",
    "drive": "dr",
    "road": "rd",
    "lane": "ln",
    "plaza": "plz",
    "circle": "cir",
    "parkway": "pkwy",
    "court": "ct",
}

# Compound directions come first so "northeast" never becomes "n" + "east"
DIRECTIONS = [
    (r"north\s*east", "ne"),
    (r"north\s*west", "nw"),
    (r"south\s*east", "se"),
    (r"south\s*west", "sw"),
    (r"north", "n"),
    (r"south", "s"),
    (r"east", "e"),
    (r"west", "w"),
]

PROPERTY_NAME_SUFFIXES = (
    "apartments",
    "apartment",
    "residences",
    "residence",
    "homes",
    "home",
    "towers",
    "tower",
    "place",
    "commons",
    "common",
)

_STRIP_CHARS = re.compile(r"[.,;#]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_DIGITS = re.compile(r"^\d+")
_LEADING_ARTICLE = re.compile(r"^the\s+", re.IGNORECASE)
_TRAILING_SUFFIX = re.compile(
    r"\s+(?:" + "|".join(PROPERTY_NAME_SUFFIXES) + r")$", re.IGNORECASE
)


def is_placeholder_address(raw: Optional[str]) -> bool:
    """True for blank addresses and sentinels like "Address to be determined"."""
    if not raw or not str(raw).strip():
        return True
    return str(raw).strip().lower().rstrip(".") in PLACEHOLDER_ADDRESSES


def normalize_address(raw: Optional[str]) -> str:
    """
    Lower-case an address, drop punctuation and abbreviate street types
    and compass directions.

    Example:
        "1234 Northeast Main Boulevard" -> "1234 ne main blvd"
    """
    if not raw:
        return ""
    text = _STRIP_CHARS.sub(" ", str(raw).lower().strip())
    for long, short in STREET_TYPES.items():
        text = re.sub(rf"\b{long}\b", short, text)
    for pattern, short in DIRECTIONS:
        text = re.sub(rf"\b{pattern}\b", short, text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_street_number(raw: Optional[str]) -> str:
    """Leading run of digits of the raw address, or ""."""
    if not raw:
        return ""
    match = _LEADING_DIGITS.match(str(raw).strip())
    return match.group(0) if match else ""


def extract_street_name(raw: Optional[str]) -> str:
    """
    Street name without the house number, taken from the part of the
    address before the first comma.

    Example:
        "222 S 15th Street, Omaha, NE" -> "s 15th st"
    """
    if not raw:
        return ""
    street_part = str(raw).split(",", 1)[0]
    normalized = normalize_address(street_part)
    return _LEADING_DIGITS.sub("", normalized).strip()


def normalize_property_name(raw: Optional[str]) -> str:
    """
    Reduce a property name to its distinctive core.

    Example:
        "The Duo" -> "duo", "Duo Apartments" -> "duo"
    """
    if not raw:
        return ""
    name = _WHITESPACE.sub(" ", str(raw).lower().strip())
    name = _LEADING_ARTICLE.sub("", name)
    name = _TRAILING_SUFFIX.sub("", name)
    return name.strip()
