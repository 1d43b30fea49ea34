"""Utility functions for WLED dial control.

This module contains helper functions used across the application:
- clean_address: Normalise free-text device addresses
- classify_address / validate_address / require_address: Address validation
- truncate: Fit text to the glyph canvas character budget
- round_half_up: Percentage rounding matching the device UI
"""

import math
import re

from core.errors import InvalidAddress
from models.types import AddressKind

MIN_ADDRESS_LENGTH = 4

_SCHEME_RE = re.compile(r'^https?://')
_TRAILING_SLASH_RE = re.compile(r'/+$')
_NON_PRINTABLE_RE = re.compile(r'[^\x20-\x7E]')
IPV4_RE = re.compile(r'^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$')
HOSTNAME_RE = re.compile(r'^([a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}$|^wled(-[0-9]+)?$|^wled\.local$')


def clean_address(text: str | None) -> str:
    """Strip scheme prefix, trailing slashes and non-printable characters.

    Applying this twice gives the same result as applying it once.
    """
    if not text:
        return ''
    clean = _NON_PRINTABLE_RE.sub('', text)
    previous = None
    # Repeat until stable so "http://http://x/ /" cleans fully in one call
    while clean != previous:
        previous = clean
        clean = _SCHEME_RE.sub('', clean.strip())
        clean = _TRAILING_SLASH_RE.sub('', clean).strip()
    return clean


def classify_address(text: str | None) -> AddressKind:
    """Classify an address as IPv4, hostname or invalid (after cleaning)."""
    clean = clean_address(text)
    if len(clean) < MIN_ADDRESS_LENGTH:
        return AddressKind.INVALID
    if IPV4_RE.match(clean):
        return AddressKind.IPV4
    if HOSTNAME_RE.match(clean):
        return AddressKind.HOSTNAME
    return AddressKind.INVALID


def validate_address(text: str | None) -> str | None:
    """Return the cleaned address if valid, otherwise None."""
    if classify_address(text) is AddressKind.INVALID:
        return None
    return clean_address(text)


def require_address(text: str | None) -> str:
    """Return the cleaned address, raising InvalidAddress if it is not valid."""
    address = validate_address(text)
    if address is None:
        raise InvalidAddress(text)
    return address


def truncate(text: str, limit: int, suffix: str = '..') -> str:
    """Cut text to limit characters, ending with suffix when shortened."""
    if len(text) <= limit:
        return text
    return text[:max(limit - len(suffix), 0)] + suffix


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))
