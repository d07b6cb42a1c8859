# ============================================================================
# src/lab_triage/config/scoring_config.py
# ============================================================================
"""
Confidence Scoring Weights
- Component weights for the overall confidence score
- Weights must sum to 1.0
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError

class ScoringSettings(BaseSettings):
    IDENTITY_WEIGHT: float = Field(
        default=0.20,
        ge=0.0, le=1.0,
        description="Weight of the patient identity component"
    )
    MARKERS_WEIGHT: float = Field(
        default=0.30,
        ge=0.0, le=1.0,
        description="Weight of the health marker component"
    )
    RANGES_WEIGHT: float = Field(
        default=0.25,
        ge=0.0, le=1.0,
        description="Weight of the reference range component"
    )
    ABNORMAL_WEIGHT: float = Field(
        default=0.25,
        ge=0.0, le=1.0,
        description="Weight of the abnormal value component"
    )

    @model_validator(mode="after")
    def check_weights_sum(self) -> "ScoringSettings":
        total = self.IDENTITY_WEIGHT + self.MARKERS_WEIGHT + self.RANGES_WEIGHT + self.ABNORMAL_WEIGHT
        if abs(total - 1.0) > 1e-6:
            raise ConfigurationError(f"Component weights must sum to 1.0, got {total:.3f}")
        return self

scoring_settings = ScoringSettings()
