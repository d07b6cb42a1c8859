# ============================================================================
# src/lab_triage/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .thresholds_config import threshold_settings, ThresholdSettings
from .scoring_config import scoring_settings, ScoringSettings
from .extraction_config import extraction_settings, ExtractionSettings
from .logging_config import logging_settings, LoggingSettings
