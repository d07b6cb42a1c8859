# ============================================================================
# src/lab_triage/utils/parsing.py
# ============================================================================
"""
Numeric and unit parsing helpers for Chilean lab reports.

Chilean reports mix comma decimals ("11,2"), period decimals ("0.55")
and dot thousands separators ("250.000" platelets).
"""

import re
from typing import Optional


# Numeric token: 1.000.000 | 250.000 | 11,2 | 0.55 | 269
NUMBER_PATTERN = r'\d{1,3}(?:\.\d{3}){2,}|\d+(?:[.,]\d+)?'

# Units as printed on Chilean reports, longest first so alternation is greedy
KNOWN_UNITS = (
    'mL/min/1.73m²', 'mL/min/1.73 m²', 'mL/min/1.73m2', 'mL/min',
    'mill/mm³', 'mill/mm3', 'x10^3/uL', 'x10³/uL', 'x10^6/uL', 'x10⁶/uL',
    'mUI/mL', 'uUI/mL', 'µUI/mL', 'mUI/L', 'uUI/L',
    'mg/dL', 'g/dL', 'ng/dL', 'pg/mL', 'ng/mL', 'ug/dL', 'µg/dL',
    'mg/L', 'mEq/L', 'mmol/L', 'umol/L', 'µmol/L', 'U/L', 'UI/L',
    '/mm³', '/mm3', '/uL', '/µL', 'mm/hr', 'mm/h', 'fL', 'pg', 'seg', '%',
)

UNIT_PATTERN = '|'.join(re.escape(unit) for unit in KNOWN_UNITS)

# Units where a dotted group means thousands, never a decimal
COUNT_UNITS = frozenset({'/mm³', '/mm3', '/ul', '/µl'})

_THOUSANDS_ONLY = re.compile(r'^\d{1,3}(?:\.\d{3})+$')


def canonical_unit(unit: Optional[str]) -> Optional[str]:
    """Map an extracted unit to its catalog spelling (case-insensitive)."""
    if not unit:
        return None
    lowered = unit.strip().lower()
    for known in KNOWN_UNITS:
        if known.lower() == lowered:
            return known
    return unit.strip()


def units_equivalent(first: Optional[str], second: Optional[str]) -> bool:
    """Case-insensitive unit equality that treats ³/3 and µ/u alike."""
    if not first or not second:
        return False

    def _key(unit: str) -> str:
        return (unit.lower().replace('³', '3').replace('µ', 'u')
                .replace(' ', '').replace('²', '2'))

    return _key(first) == _key(second)


def parse_lab_number(token: str, unit: Optional[str] = None) -> Optional[float]:
    """
    Parse a numeric token.

    Examples:
        "11,2" -> 11.2
        "0.55" -> 0.55
        "1.000.000" -> 1000000.0
        "250.000" with unit "/mm³" -> 250000.0
        "250.000" without count unit -> 250.0

    Args:
        token: Numeric text
        unit: Unit following the number, used to resolve dot grouping

    Returns:
        Float value or None if token is not numeric
    """
    if not token:
        return None

    cleaned = token.strip().replace(' ', '')
    if not cleaned:
        return None

    if _THOUSANDS_ONLY.match(cleaned):
        groups = cleaned.count('.')
        if groups >= 2 or (unit and unit.lower() in COUNT_UNITS):
            cleaned = cleaned.replace('.', '')

    cleaned = cleaned.replace(',', '.')

    try:
        return float(cleaned)
    except ValueError:
        return None
