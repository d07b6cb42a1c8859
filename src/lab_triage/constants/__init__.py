# ============================================================================
# src/lab_triage/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .marker_catalog import (
    HEALTH_MARKERS,
    MARKER_LOOKUP,
    MARKERS_BY_CODE,
    get_marker,
    find_marker_by_name,
    name_variants,
)
from .critical_values import (
    CRITICAL_VALUE_THRESHOLDS,
    TIME_TO_ACTION,
    get_critical_threshold,
    crosses_critical_threshold,
    to_threshold_unit,
    value_in_threshold_unit,
)
from .risk_factors import RISK_FACTOR_TABLE, DECISION_TRIGGER_PHRASES, risk_factor_for
