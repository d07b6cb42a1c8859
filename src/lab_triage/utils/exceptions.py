# ============================================================================
# src/lab_triage/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the lab triage engine.
"""


class LabTriageError(Exception):
    """Base exception for all lab triage errors."""
    pass


class ExtractionError(LabTriageError):
    """Error while extracting data from report text."""
    pass


class IdentityExtractionError(ExtractionError):
    """Malformed identity number (RUT) input."""
    pass


class MarkerExtractionError(ExtractionError):
    """Error extracting health markers."""
    pass


class RangeExtractionError(ExtractionError):
    """Error extracting reference ranges."""
    pass


class ValidationError(LabTriageError):
    """Error during data validation."""
    pass


class ReferenceRangeError(ValidationError):
    """Invalid reference range."""
    pass


class ConfigurationError(LabTriageError):
    """Invalid configuration."""
    pass


class CatalogError(LabTriageError):
    """Static catalog could not be loaded or is inconsistent."""
    pass
