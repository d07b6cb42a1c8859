# ============================================================================
# src/lab_triage/constants/risk_factors.py
# ============================================================================
"""
Risk Factor Table
- Confidence-scorer issue -> (severity, message)
- Rendered risk factors read "<severity>: <message>"
"""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..core.context.enums import RiskSeverity


# Issues raised by the confidence scorer components
ISSUE_NO_IDENTITY = "no identity found"
ISSUE_INVALID_IDENTITY = "invalid identity format"
ISSUE_MANY_IDENTITY_CANDIDATES = "many identity candidates"
ISSUE_MULTIPLE_IDENTITIES = "multiple identities detected"
ISSUE_NO_MARKERS = "no health markers found"
ISSUE_FEW_MARKERS = "few markers detected"
ISSUE_NO_RANGES = "no reference ranges found"
ISSUE_CANNOT_VALIDATE = "cannot validate abnormal values"
ISSUE_LIMITED_RANGES = "limited reference ranges"
ISSUE_NO_LAB_VALUES = "no lab values processed"
ISSUE_LOW_EXTRACTION_RATE = "low value extraction rate"
ISSUE_CRITICAL_ABNORMALITIES = "critical abnormalities detected"
ISSUE_COMPONENT_FAILED = "component evaluation failed"

RISK_FACTOR_TABLE: Mapping[str, Tuple[RiskSeverity, str]] = MappingProxyType({
    ISSUE_NO_IDENTITY: (
        RiskSeverity.CRITICAL, "patient identity could not be determined (no identity number)"),
    ISSUE_NO_MARKERS: (
        RiskSeverity.CRITICAL, "no health markers found - no clinical data to analyze"),
    ISSUE_INVALID_IDENTITY: (
        RiskSeverity.HIGH, "invalid identity format - verify patient identity"),
    ISSUE_MULTIPLE_IDENTITIES: (
        RiskSeverity.HIGH, "multiple identities detected - possible multi-patient confusion"),
    ISSUE_MANY_IDENTITY_CANDIDATES: (
        RiskSeverity.MEDIUM, "many identity candidates in document - verify patient identity"),
    ISSUE_CRITICAL_ABNORMALITIES: (
        RiskSeverity.CRITICAL, "critical abnormalities detected - physician review required"),
    ISSUE_LOW_EXTRACTION_RATE: (
        RiskSeverity.HIGH, "low value extraction rate - incomplete results"),
    ISSUE_FEW_MARKERS: (
        RiskSeverity.MEDIUM, "few markers detected - limited analysis"),
    ISSUE_NO_RANGES: (
        RiskSeverity.MEDIUM, "no reference ranges - limited validation"),
    ISSUE_LIMITED_RANGES: (
        RiskSeverity.LOW, "limited reference ranges"),
    ISSUE_CANNOT_VALIDATE: (
        RiskSeverity.LOW, "cannot validate abnormal values against ranges"),
})

# Phrases that deny auto-approval whenever they appear in a risk factor
DECISION_TRIGGER_PHRASES: Tuple[str, ...] = (
    "multiple identities detected",
    "invalid identity format",
    "no health markers found",
    "critical abnormalities detected",
)


def risk_factor_for(issue: str) -> Optional[str]:
    """Rendered risk factor for an issue, or None if the issue is informational."""
    entry = RISK_FACTOR_TABLE.get(issue)
    if entry is None:
        return None
    severity, message = entry
    return f"{severity.value}: {message}"
