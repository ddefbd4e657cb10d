"""
Fixed-point amount codec.

Amounts travel as decimal strings with at most two fractional digits and are
stored as integer minor units (cents). The conversion is exact: no floats and
no rounding.
"""

import re

from .exceptions import InvalidAmount

MINOR_UNITS_PER_MAJOR = 100
MAX_AMOUNT_MINOR = 2**63 - 1
_MAX_MAJOR_DIGITS = len(str(MAX_AMOUNT_MINOR // MINOR_UNITS_PER_MAJOR))

_AMOUNT_RE = re.compile(r"(?P<sign>[+-]?)(?P<major>[0-9]+)(?:\.(?P<fraction>[0-9]{1,2}))?")


def decode_amount(text):
    """
    Convert a decimal string such as "10.15" into minor units (1015).

    A single fractional digit is padded ("1.5" -> 150). Raises InvalidAmount
    for empty input, malformed input, more than two fractional digits, and any
    value that is not strictly positive or does not fit a signed 64-bit integer.
    """
    if not isinstance(text, str):
        raise InvalidAmount("Amount must be a string.")

    text = text.strip()
    if not text:
        raise InvalidAmount("Amount is required.")

    match = _AMOUNT_RE.fullmatch(text)
    if match is None:
        if text.count(".") == 1 and len(text.split(".", 1)[1]) > 2:
            raise InvalidAmount("Amount supports up to 2 decimals.")
        raise InvalidAmount("Amount must be a decimal number.")

    fraction = (match.group("fraction") or "").ljust(2, "0")
    major = match.group("major").lstrip("0") or "0"
    if len(major) > _MAX_MAJOR_DIGITS:
        raise InvalidAmount("Amount is too large.")
    magnitude = int(major) * MINOR_UNITS_PER_MAJOR + int(fraction)
    if magnitude > MAX_AMOUNT_MINOR:
        raise InvalidAmount("Amount is too large.")

    amount_minor = -magnitude if match.group("sign") == "-" else magnitude
    if amount_minor <= 0:
        raise InvalidAmount("Amount must be positive.")
    return amount_minor


def encode_amount(amount_minor: int) -> str:
    """Render minor units as "<integer>.<two digits>", e.g. 1015 -> "10.15"."""
    sign = "-" if amount_minor < 0 else ""
    major, minor = divmod(abs(amount_minor), MINOR_UNITS_PER_MAJOR)
    return f"{sign}{major}.{minor:02d}"
