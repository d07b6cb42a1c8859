# ============================================================================
# src/lab_triage/core/context/enums.py
# ============================================================================
"""
Pipeline Enums
- Catalog classifications (marker category / priority, urgency)
- Extraction results (range type, identity source)
- Triage outcomes (severity, risk, verdict)
"""

from enum import Enum

class IdentitySource(str, Enum):
    HEADER = "header"
    FORM = "form"      # "RUT: ..." style label
    TABLE = "table"
    BODY = "body"

class MarkerCategory(str, Enum):
    GLUCOSE = "glucose"
    LIPIDS = "lipids"
    LIVER = "liver"
    THYROID = "thyroid"
    KIDNEY = "kidney"
    BLOOD = "blood"
    ELECTROLYTES = "electrolytes"
    CARDIAC = "cardiac"
    OTHER = "other"

class MarkerPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class RangeType(str, Enum):
    BOUNDED = "bounded"
    UPPER_LIMIT = "upper_limit"
    LOWER_LIMIT = "lower_limit"
    EXACT = "exact"

class ValueStatus(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"
    UNKNOWN = "unknown"

class Severity(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

class AbnormalitySource(str, Enum):
    RANGE = "range"
    INDICATOR = "indicator"  # inline [ * ] glyph
    BOTH = "both"
    NONE = "none"

class PriorityTier(str, Enum):
    HIGH = "HIGH"       # > 50
    MEDIUM = "MEDIUM"   # 20 - 50
    LOW = "LOW"         # 1 - 19
    NORMAL = "NORMAL"   # 0

class RiskSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class ConfidenceRecommendation(str, Enum):
    AUTO_APPROVE = "auto_approve"
    MANUAL_REVIEW = "manual_review"
    REJECT = "reject"

class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    URGENT = "urgent"
    PRIORITY = "priority"

class AlertSeverity(str, Enum):
    LIFE_THREATENING = "life_threatening"
    CRITICAL = "critical"
    URGENT = "urgent"

class OverrideRecommendation(str, Enum):
    IMMEDIATE_ESCALATION = "immediate_escalation"
    URGENT_REVIEW = "urgent_review"
    PRIORITY_PROCESSING = "priority_processing"
    STANDARD_PROCESSING = "standard_processing"

class EscalationLevel(str, Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"

class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class Verdict(str, Enum):
    AUTO_PROCESS = "auto_process"
    MANUAL_REVIEW = "manual_review"
    ESCALATE = "escalate"
    REJECT = "reject"
