"""Input masks and format checks for free-text fields."""

import re

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGITS = re.compile(r"\D")


def format_phone(value: str) -> str:
    """
    Mask a US phone number as the visitor types.

        "555"          -> "555"
        "555123"       -> "(555) 123"
        "5551234567"   -> "(555) 123-4567"

    Anything past ten digits is dropped.
    """
    digits = _NON_DIGITS.sub("", value or "")
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:10]}"


def format_currency(value: str) -> str:
    """Mask a dollar amount, e.g. 25000 -> $25,000. Empty when there are no digits."""
    digits = _NON_DIGITS.sub("", value or "")
    if not digits:
        return ""
    return f"${int(digits):,}"


def is_valid_email(email: str) -> bool:
    """local@domain.tld shape, no whitespace"""
    return bool(EMAIL_REGEX.match(email or ""))
