# ============================================================================
# src/lab_triage/utils/rut.py
# ============================================================================
"""
Chilean RUT (Rol Único Tributario) utilities
- Modulo-11 check digit
- Validation, normalization, display formatting
- Anonymization for log output
"""

import re
from typing import Optional, Tuple

from .exceptions import IdentityExtractionError


MIN_BODY_LENGTH = 7
MAX_BODY_LENGTH = 8

_RUT_CLEAN_PATTERN = re.compile(r'[\s.\-]')
_RUT_SHAPE = re.compile(r'^(\d{7,8})([0-9K])$')


def compute_check_digit(body: str) -> str:
    """
    Compute the modulo-11 check character for a RUT body.

    Digits are weighted right to left with multipliers cycling 2..7.
    The check character is 11 - (sum mod 11), where 11 maps to '0'
    and 10 maps to 'K'.

    Args:
        body: RUT digits without check character (dots allowed)

    Returns:
        Check character ('0'-'9' or 'K')

    Raises:
        IdentityExtractionError: If body is not 7-8 digits
    """
    digits = body.replace('.', '').strip()
    if not digits.isdigit() or not MIN_BODY_LENGTH <= len(digits) <= MAX_BODY_LENGTH:
        raise IdentityExtractionError(f"RUT body must be 7-8 digits, got {body!r}")

    total = 0
    multiplier = 2
    for digit in reversed(digits):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1

    remainder = 11 - (total % 11)
    if remainder == 11:
        return '0'
    if remainder == 10:
        return 'K'
    return str(remainder)


def split_rut(rut: str) -> Optional[Tuple[str, str]]:
    """Split a RUT into (body, check character), or None if malformed."""
    if not rut:
        return None
    cleaned = _RUT_CLEAN_PATTERN.sub('', rut).upper()
    match = _RUT_SHAPE.match(cleaned)
    if not match:
        return None
    return match.group(1), match.group(2)


def validate_rut(rut: str) -> bool:
    """Check a RUT's check character. Malformed input is simply invalid."""
    parts = split_rut(rut)
    if parts is None:
        return False
    body, check = parts
    return compute_check_digit(body) == check


def normalize_rut(rut: str) -> Optional[str]:
    """Return '12345678-9' form, or None if the RUT cannot be parsed."""
    parts = split_rut(rut)
    if parts is None:
        return None
    return f"{parts[0]}-{parts[1]}"


def format_rut(rut: str) -> Optional[str]:
    """Return display form with thousands dots: '12.345.678-9'."""
    parts = split_rut(rut)
    if parts is None:
        return None
    body, check = parts
    grouped = f"{int(body):,}".replace(',', '.')
    return f"{grouped}-{check}"


def anonymize_rut(rut: Optional[str]) -> str:
    """
    Mask a RUT for logging: '12.345.678-9' -> '12.XXX.XXX-9'.

    Anything that does not parse is fully masked.
    """
    formatted = format_rut(rut) if rut else None
    if not formatted:
        return "XX.XXX.XXX-X"
    head, _, check = formatted.partition('-')
    groups = head.split('.')
    masked = [groups[0]] + ['XXX'] * (len(groups) - 1)
    return f"{'.'.join(masked)}-{check}"
