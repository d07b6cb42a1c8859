# ============================================================================
# src/lab_triage/core/context/catalog_entries.py
# ============================================================================
"""
Static catalog rows
- MarkerDefinition: one lab test known to the marker extractor
- CriticalThreshold: absolute danger limits for one marker
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .enums import MarkerCategory, MarkerPriority, Urgency


@dataclass(frozen=True)
class MarkerDefinition:
    code: str
    name: str                       # display name as printed on reports
    category: MarkerCategory
    priority: MarkerPriority
    aliases: Tuple[str, ...] = ()
    units: Tuple[str, ...] = ()     # first entry is the preferred unit
    description: str = ""

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.name,) + self.aliases

    @property
    def unit(self) -> Optional[str]:
        return self.units[0] if self.units else None


@dataclass(frozen=True)
class CriticalThreshold:
    marker_code: str
    marker_name: str
    category: MarkerCategory
    unit: str
    urgency: Urgency
    description: str
    clinical_significance: str
    critical_high: Optional[float] = None
    critical_low: Optional[float] = None

    def is_crossed(self, value: float) -> bool:
        """Strict comparison: a value equal to a limit is not critical."""
        if self.critical_high is not None and value > self.critical_high:
            return True
        if self.critical_low is not None and value < self.critical_low:
            return True
        return False

    def describe_crossing(self, value: float) -> str:
        if self.critical_high is not None and value > self.critical_high:
            return f">{self.critical_high:g}"
        return f"<{self.critical_low:g}"
