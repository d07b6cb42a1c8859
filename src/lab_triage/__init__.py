# ============================================================================
# src/lab_triage/__init__.py
# ============================================================================
"""
Lab Triage Engine

Triage of Chilean clinical lab report text: patient RUT, health
markers, reference ranges, abnormal and critical values, confidence
scoring and an auditable processing decision.

Usage:
    from lab_triage import process_report

    result = process_report(text)
    result.decision.verdict
"""

from .core.pipeline import TriagePipeline, process_report
from .core.analytics import summarize_batch
from .core.context.enums import Verdict
from .core.context.results import PipelineResult

__version__ = "0.1.0"

__all__ = [
    'TriagePipeline',
    'process_report',
    'summarize_batch',
    'Verdict',
    'PipelineResult',
]
