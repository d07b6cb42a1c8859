# src/lab_triage/core/context/__init__.py

from .enums import (
    IdentitySource,
    MarkerCategory,
    MarkerPriority,
    RangeType,
    ValueStatus,
    Severity,
    AbnormalitySource,
    PriorityTier,
    RiskSeverity,
    ConfidenceRecommendation,
    Urgency,
    AlertSeverity,
    OverrideRecommendation,
    EscalationLevel,
    RiskLevel,
    Verdict,
)
from .catalog_entries import MarkerDefinition, CriticalThreshold
from .results import (
    IdentityCandidate,
    IdentityExtraction,
    MarkerCandidate,
    MarkerExtraction,
    ReferenceRange,
    RangeExtraction,
    AbnormalResult,
    AbnormalityReport,
    ComponentConfidence,
    QualityMetrics,
    DecisionThresholds,
    ConfidenceReport,
    CriticalAlert,
    CriticalOverrideResult,
    AuditTrail,
    Decision,
    ProcessedSummary,
    PipelineResult,
)

__all__ = [
    "IdentitySource",
    "MarkerCategory",
    "MarkerPriority",
    "RangeType",
    "ValueStatus",
    "Severity",
    "AbnormalitySource",
    "PriorityTier",
    "RiskSeverity",
    "ConfidenceRecommendation",
    "Urgency",
    "AlertSeverity",
    "OverrideRecommendation",
    "EscalationLevel",
    "RiskLevel",
    "Verdict",
    "MarkerDefinition",
    "CriticalThreshold",
    "IdentityCandidate",
    "IdentityExtraction",
    "MarkerCandidate",
    "MarkerExtraction",
    "ReferenceRange",
    "RangeExtraction",
    "AbnormalResult",
    "AbnormalityReport",
    "ComponentConfidence",
    "QualityMetrics",
    "DecisionThresholds",
    "ConfidenceReport",
    "CriticalAlert",
    "CriticalOverrideResult",
    "AuditTrail",
    "Decision",
    "ProcessedSummary",
    "PipelineResult",
]
