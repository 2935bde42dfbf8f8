"""
IMEI validation helpers.

Structural validation (15 digits once spaces and dashes are removed) and the
Luhn checksum are separate checks; callers decide whether a checksum failure
is fatal, but must always run the structural check.
"""

import re
from dataclasses import dataclass
from typing import Optional

IMEI_LENGTH = 15
_SEPARATORS = re.compile(r"[\s-]")
_IMEI_PATTERN = re.compile(r"^\d{15}$")

FORMAT_ERROR = "format"
CHECKSUM_ERROR = "checksum"


@dataclass(frozen=True)
class ImeiValidation:
    valid: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


def clean_imei(imei: str) -> str:
    return _SEPARATORS.sub("", imei or "")


def is_imei_format(imei: str) -> bool:
    return bool(_IMEI_PATTERN.match(clean_imei(imei)))


def luhn_check(imei: str) -> bool:
    """Luhn checksum over a 15 digit IMEI; the last digit is the check digit"""
    cleaned = clean_imei(imei)
    if not _IMEI_PATTERN.match(cleaned):
        return False

    total = 0
    should_double = True
    # Right to left, excluding the check digit
    for char in reversed(cleaned[:-1]):
        digit = int(char)
        if should_double:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
        should_double = not should_double

    check_digit = (10 - (total % 10)) % 10
    return check_digit == int(cleaned[-1])


def validate_imei(imei: str) -> ImeiValidation:
    cleaned = clean_imei(imei)

    if not is_imei_format(cleaned):
        return ImeiValidation(
            valid=False,
            error="IMEI must be exactly 15 digits",
            error_code=FORMAT_ERROR
        )

    if not luhn_check(cleaned):
        return ImeiValidation(
            valid=False,
            error="Invalid IMEI checksum (Luhn validation failed)",
            error_code=CHECKSUM_ERROR
        )

    return ImeiValidation(valid=True)


def mask_imei(imei: str) -> str:
    """Only the last 4 digits survive; one asterisk per hidden digit"""
    cleaned = clean_imei(imei)
    if len(cleaned) < 4:
        return "***"
    return "*" * (len(cleaned) - 4) + cleaned[-4:]
