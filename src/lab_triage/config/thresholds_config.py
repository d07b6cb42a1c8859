# ============================================================================
# src/lab_triage/config/thresholds_config.py
# ============================================================================
"""
Decision Thresholds
- Recommendation bands (auto-approve / manual review / reject)
- Decision-engine override checks
- Critical-override confidence bypass
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class ThresholdSettings(BaseSettings):
    AUTO_APPROVE_THRESHOLD: float = Field(
        default=85.0,
        ge=0.0, le=100.0,
        description="Minimum overall confidence for tentative auto-approval"
    )
    MANUAL_REVIEW_THRESHOLD: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Below this overall confidence the report is rejected"
    )
    REJECT_THRESHOLD: float = Field(
        default=50.0,
        ge=0.0, le=100.0,
        description="Reported reject threshold (informational band floor)"
    )
    MIN_IDENTITY_SCORE: float = Field(
        default=80.0,
        ge=0.0, le=100.0,
        description="Identity component score required for auto-approval"
    )
    MIN_MARKER_SCORE: float = Field(
        default=75.0,
        ge=0.0, le=100.0,
        description="Marker component score required for auto-approval"
    )
    MIN_COMPLETENESS: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Completeness metric required for auto-approval"
    )
    MIN_ACCURACY: float = Field(
        default=80.0,
        ge=0.0, le=100.0,
        description="Accuracy metric required for auto-approval"
    )
    MAX_CRITICAL_ABNORMALITIES: int = Field(
        default=3,
        ge=0,
        description="More critical abnormalities than this denies auto-approval"
    )
    MAX_RISK_FACTORS: int = Field(
        default=2,
        ge=0,
        description="More risk factors than this denies auto-approval"
    )
    PRIORITY_BYPASS_CONFIDENCE: float = Field(
        default=70.0,
        ge=0.0, le=100.0,
        description="Priority-tier critical alerts bypass confidence only below this score"
    )
    FEW_MARKERS_SCORE_CAP: float = Field(
        default=19.0,
        ge=0.0, le=100.0,
        description="Marker component ceiling when fewer than MIN_MARKER_COUNT markers are found"
    )
    MIN_MARKER_COUNT: int = Field(
        default=3,
        ge=1,
        description="Marker count below which the marker score is capped"
    )

threshold_settings = ThresholdSettings()
