# ============================================================================
# src/lab_triage/utils/__init__.py
# ============================================================================
"""
Utility modules for the lab triage engine.
"""

from .exceptions import (
    LabTriageError,
    ExtractionError,
    IdentityExtractionError,
    MarkerExtractionError,
    RangeExtractionError,
    ValidationError,
    ReferenceRangeError,
    ConfigurationError,
    CatalogError,
)
from .logging import setup_logging, DocumentIdFilter, JsonFormatter, LogContext, log_performance
from .rut import compute_check_digit, validate_rut, normalize_rut, format_rut, anonymize_rut

__all__ = [
    'LabTriageError',
    'ExtractionError',
    'IdentityExtractionError',
    'MarkerExtractionError',
    'RangeExtractionError',
    'ValidationError',
    'ReferenceRangeError',
    'ConfigurationError',
    'CatalogError',
    'setup_logging',
    'DocumentIdFilter',
    'JsonFormatter',
    'LogContext',
    'log_performance',
    'compute_check_digit',
    'validate_rut',
    'normalize_rut',
    'format_rut',
    'anonymize_rut',
]
