# src/lab_triage/extractors/__init__.py
"""
Text Extraction Module

Pattern-cascade extractors over cleaned report text:
- Patient identity (Chilean RUT with modulo-11 check digit)
- Health markers from the catalog, with value and unit
- Reference ranges (bounded, limits, exact, gender split)

All share the Extractor base so a strategy can be swapped without
touching scoring or decisions.
"""

from .base import Extractor
from .identity_extractor import IdentityExtractor, extract_identity, best_identity, RUT_PATTERNS
from .marker_extractor import MarkerExtractor, extract_markers
from .range_extractor import RangeExtractor, extract_ranges, parse_reference_range, summarize_ranges, RANGE_PATTERNS

__all__ = [
    'Extractor',
    'IdentityExtractor',
    'extract_identity',
    'best_identity',
    'RUT_PATTERNS',
    'MarkerExtractor',
    'extract_markers',
    'RangeExtractor',
    'extract_ranges',
    'parse_reference_range',
    'summarize_ranges',
    'RANGE_PATTERNS',
]
