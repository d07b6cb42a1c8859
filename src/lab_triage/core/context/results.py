# ============================================================================
# src/lab_triage/core/context/results.py
# ============================================================================
"""
Per-document result objects
- Produced once per pipeline run, never mutated
- Collections are tuples so results can be shared and compared safely
- to_dict() gives callers a JSON-friendly view
"""

from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ...utils.exceptions import ReferenceRangeError
from .catalog_entries import CriticalThreshold, MarkerDefinition
from .enums import (
    AbnormalitySource,
    AlertSeverity,
    ConfidenceRecommendation,
    EscalationLevel,
    IdentitySource,
    MarkerPriority,
    OverrideRecommendation,
    PriorityTier,
    RangeType,
    RiskLevel,
    Severity,
    Urgency,
    ValueStatus,
    Verdict,
)


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (tuple, list)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


class Serializable:
    """Mixin giving dataclasses a recursive to_dict()."""

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


# ----------------------------------------------------------------------------
# Identity
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class IdentityCandidate(Serializable):
    raw: str
    normalized: str                 # "12345678-9"
    formatted: str                  # "12.345.678-9"
    body: str
    check_digit: str
    start: int
    end: int
    context: str
    source: IdentitySource
    pattern: str
    labelled: bool
    confidence: float
    is_valid: bool


@dataclass(frozen=True)
class IdentityExtraction(Serializable):
    candidates: Tuple[IdentityCandidate, ...] = ()
    best_match: Optional[IdentityCandidate] = None
    distinct_valid: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return self.best_match is not None

    @property
    def multiple_identities(self) -> bool:
        return len(self.distinct_valid) > 1


# ----------------------------------------------------------------------------
# Markers
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class MarkerCandidate(Serializable):
    marker: MarkerDefinition
    matched_name: str
    start: int
    end: int
    value: Optional[float] = None
    value_text: Optional[str] = None
    value_start: Optional[int] = None
    unit: Optional[str] = None
    has_abnormal_flag: bool = False
    line: str = ""
    page: int = 0
    confidence: float = 0.0

    @property
    def code(self) -> str:
        return self.marker.code


@dataclass(frozen=True)
class MarkerExtraction(Serializable):
    candidates: Tuple[MarkerCandidate, ...] = ()

    @property
    def total_found(self) -> int:
        return len(self.candidates)

    @property
    def critical_markers(self) -> Tuple[MarkerCandidate, ...]:
        return tuple(c for c in self.candidates if c.marker.priority == MarkerPriority.CRITICAL)

    @property
    def high_priority_markers(self) -> Tuple[MarkerCandidate, ...]:
        return tuple(c for c in self.candidates if c.marker.priority == MarkerPriority.HIGH)

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(c.code for c in self.candidates))


# ----------------------------------------------------------------------------
# Reference ranges
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceRange(Serializable):
    range_type: RangeType
    start: int
    end: int
    raw: str
    pattern: str
    confidence: float
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    unit: Optional[str] = None
    gender: Optional[str] = None        # "male" / "female"
    age_group: Optional[str] = None     # "adult" / "child" / "elderly"
    corroborated: bool = False          # abnormal glyph on the same line

    def __post_init__(self):
        if (self.min_value is not None and self.max_value is not None
                and self.min_value > self.max_value):
            raise ReferenceRangeError(
                f"Reference range min {self.min_value} exceeds max {self.max_value}"
            )


@dataclass(frozen=True)
class RangeExtraction(Serializable):
    ranges: Tuple[ReferenceRange, ...] = ()

    @property
    def total_found(self) -> int:
        return len(self.ranges)


# ----------------------------------------------------------------------------
# Abnormality detection
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class AbnormalResult(Serializable):
    marker: MarkerCandidate
    reference_range: Optional[ReferenceRange]
    has_indicator: bool
    is_abnormal: bool
    status: ValueStatus
    severity: Severity
    abnormality_source: AbnormalitySource
    deviation_percent: Optional[float]
    is_critical_value: bool
    priority_score: int
    confidence: float

    @property
    def has_value(self) -> bool:
        return self.marker.value is not None


@dataclass(frozen=True)
class AbnormalityReport(Serializable):
    results: Tuple[AbnormalResult, ...] = ()
    overall_priority_score: int = 0
    priority_tier: PriorityTier = PriorityTier.NORMAL

    @property
    def abnormal_results(self) -> Tuple[AbnormalResult, ...]:
        return tuple(r for r in self.results if r.is_abnormal)

    @property
    def critical_abnormalities(self) -> Tuple[AbnormalResult, ...]:
        return tuple(r for r in self.results if r.is_critical_value)

    @property
    def severe_abnormalities(self) -> Tuple[AbnormalResult, ...]:
        return tuple(r for r in self.results if r.severity == Severity.SEVERE)

    @property
    def total_abnormalities(self) -> int:
        return len(self.abnormal_results)


# ----------------------------------------------------------------------------
# Confidence
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class ComponentConfidence(Serializable):
    score: float
    weight: float
    issues: Tuple[str, ...] = ()

    @property
    def weighted(self) -> float:
        return self.score * self.weight


@dataclass(frozen=True)
class QualityMetrics(Serializable):
    completeness: float
    accuracy: float
    consistency: float


@dataclass(frozen=True)
class DecisionThresholds(Serializable):
    auto_approve: float
    manual_review: float
    reject: float


@dataclass(frozen=True)
class ConfidenceReport(Serializable):
    identity: ComponentConfidence
    markers: ComponentConfidence
    ranges: ComponentConfidence
    abnormal_values: ComponentConfidence
    overall_score: int
    quality: QualityMetrics
    risk_factors: Tuple[str, ...]
    thresholds: DecisionThresholds
    recommendation: ConfidenceRecommendation

    @property
    def components(self) -> Dict[str, ComponentConfidence]:
        return {
            "identity": self.identity,
            "markers": self.markers,
            "ranges": self.ranges,
            "abnormal_values": self.abnormal_values,
        }


# ----------------------------------------------------------------------------
# Critical override
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class CriticalAlert(Serializable):
    marker_code: str
    marker_name: str
    value: float
    unit: str
    threshold: CriticalThreshold
    severity: AlertSeverity
    urgency: Urgency
    clinical_risk: str
    recommended_actions: Tuple[str, ...]
    escalation_required: bool
    time_to_action: str
    original_confidence: float
    override_reason: str


@dataclass(frozen=True)
class CriticalOverrideResult(Serializable):
    alerts: Tuple[CriticalAlert, ...] = ()
    override_recommendation: OverrideRecommendation = OverrideRecommendation.STANDARD_PROCESSING
    escalation_level: EscalationLevel = EscalationLevel.ROUTINE
    bypass_low_confidence: bool = False

    @property
    def has_critical_values(self) -> bool:
        return bool(self.alerts)

    @property
    def life_threatening_count(self) -> int:
        return sum(1 for a in self.alerts if a.severity == AlertSeverity.LIFE_THREATENING)

    @property
    def requires_immediate_action(self) -> bool:
        return self.life_threatening_count > 0


# ----------------------------------------------------------------------------
# Decision
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class AuditTrail(Serializable):
    passed_criteria: Tuple[str, ...] = ()
    deny_reasons: Tuple[str, ...] = ()
    overrides: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Decision(Serializable):
    verdict: Verdict
    approved: bool
    risk_level: RiskLevel
    confidence_score: int
    rationale: str
    audit_trail: AuditTrail
    safeguards: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessedSummary(Serializable):
    priority_level: PriorityTier
    patient_id: Optional[str]
    abnormal_count: int
    critical_count: int
    recommendations: Tuple[str, ...] = ()
    next_actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelineResult(Serializable):
    text: str
    pages: Tuple[str, ...]
    identity: IdentityExtraction
    markers: MarkerExtraction
    ranges: RangeExtraction
    abnormalities: AbnormalityReport
    confidence: ConfidenceReport
    critical_override: CriticalOverrideResult
    decision: Decision
    summary: Optional[ProcessedSummary] = None
    stage_errors: Tuple[str, ...] = ()
