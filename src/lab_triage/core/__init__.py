# ============================================================================
# src/lab_triage/core/__init__.py
# ============================================================================
"""
Core scoring, decision and pipeline orchestration.
"""
