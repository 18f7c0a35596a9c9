"""
Domain: destination (phone number) normalization.

A destination is a US phone number reduced to exactly 10 digits: no
formatting, no country code. Codes are stored and matched against the
normalized form only.
"""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")

DESTINATION_LENGTH = 10


def normalize_phone(raw: str | None) -> str:
    """
    Strip all non-digits and drop a leading US country code.

    Returns the digit string even when it is not 10 digits long; callers
    decide whether that is acceptable (see `is_valid_destination`).

    Example:
        normalize_phone("(555) 867-5309")   # "5558675309"
        normalize_phone("+1 555 867 5309")  # "5558675309"
    """

    digits = _NON_DIGITS.sub("", str(raw or ""))
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def is_valid_destination(destination: str) -> bool:
    return len(destination) == DESTINATION_LENGTH and destination.isdigit()


def normalize_code(raw: str | None) -> str:
    """Codes are compared as strings; only surrounding whitespace is removed."""

    return str(raw or "").strip()
