# ============================================================================
# src/lab_triage/validators/__init__.py
# ============================================================================
"""
Validators Package

Clinical validation of extracted lab values:
- Abnormality detection (reference ranges and inline glyphs)
- Critical value override (absolute danger thresholds)
"""

from .abnormality_detector import AbnormalityDetector, detect_abnormalities
from .critical_override import CriticalOverride, evaluate_critical_values

__all__ = [
    'AbnormalityDetector',
    'detect_abnormalities',
    'CriticalOverride',
    'evaluate_critical_values',
]
