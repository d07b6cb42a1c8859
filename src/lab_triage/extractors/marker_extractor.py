# ============================================================================
# src/lab_triage/extractors/marker_extractor.py
# ============================================================================
"""
Health Marker Extraction

For every catalog name variant:
- Find the name on token boundaries (accent and case insensitive)
- Resolve overlapping names to the longest one
  ("HEMOGLOBINA GLICADA A1C" beats "HEMOGLOBINA")
- Read the numeric result and unit that follow within a bounded window,
  skipping table padding
- Score the match (name exactness, value proximity, unit fit,
  corroborating occurrences)
"""

import re
from collections import Counter
from dataclasses import replace
from typing import List, Optional, Pattern, Sequence, Tuple

from ..config import ExtractionSettings
from ..constants.marker_catalog import HEALTH_MARKERS, name_variants
from ..core.context.catalog_entries import MarkerDefinition
from ..core.context.results import MarkerCandidate, MarkerExtraction
from ..utils.exceptions import MarkerExtractionError
from ..utils.parsing import NUMBER_PATTERN, UNIT_PATTERN, canonical_unit, parse_lab_number, units_equivalent
from ..utils.text_normalizer import (
    ABNORMAL_GLYPH_PATTERN,
    fix_ocr_digits,
    fold_text,
    line_bounds,
    page_for_offset,
)
from .base import Extractor


# Padding allowed between a name and its value (table fill, colons, pipes, glyph)
_PADDING = r'(?:[\s.:|\-_=]|\[\s*\*\s*\])*'

_VALUE_PATTERN = re.compile(
    r'^' + _PADDING
    + r'(?P<cmp>[<>]\s*)?(?P<value>' + NUMBER_PATTERN + r')(?![\d,.]?\d)'
    + r'(?:[ \t]*(?P<unit>' + UNIT_PATTERN + r'))?',
    re.IGNORECASE,
)

HEADER_LINE_KEYWORDS = ('LABORATORIO', 'INFORME', 'EXAMEN')

BASE_CONFIDENCE = 60
NO_VALUE_CONFIDENCE = 50
EXACT_NAME_BONUS = 15
VARIANT_NAME_BONUS = 5
CLOSE_VALUE_BONUS = 10      # value within 10 chars
NEAR_VALUE_BONUS = 5        # value within 30 chars
NEXT_LINE_PENALTY = 5
MARKER_UNIT_BONUS = 15
OTHER_UNIT_BONUS = 3
HEADER_LINE_PENALTY = 5
CORROBORATION_BONUS = 5


def _name_regex(variant: str) -> Pattern:
    words = [re.escape(word) for word in variant.split()]
    return re.compile(r'(?<![A-Z0-9])' + r'\s+'.join(words) + r'(?![A-Z0-9])')


def _compile_name_patterns(
    markers: Sequence[MarkerDefinition],
) -> Tuple[Tuple[MarkerDefinition, str, Pattern], ...]:
    compiled = []
    seen = set()
    for marker in markers:
        for name in marker.names:
            for variant in name_variants(name):
                if variant in seen:
                    continue
                seen.add(variant)
                compiled.append((marker, variant, _name_regex(variant)))
    return tuple(compiled)


class MarkerExtractor(Extractor):
    """
    Extract known lab markers with their numeric result and unit.

    Absent markers contribute nothing here; a low marker count is
    penalized later by the confidence scorer.
    """

    def __init__(
        self,
        markers: Optional[Sequence[MarkerDefinition]] = None,
        settings: Optional[ExtractionSettings] = None,
    ):
        super().__init__(settings)
        self.markers = tuple(markers) if markers is not None else HEALTH_MARKERS
        if not self.markers:
            raise MarkerExtractionError("MarkerExtractor needs at least one marker definition")
        self._patterns = _compile_name_patterns(self.markers)

    def get_name(self) -> str:
        return "MarkerExtractor"

    def empty_result(self) -> MarkerExtraction:
        return MarkerExtraction()

    def extract(
        self,
        text: str,
        page_offsets: Optional[Sequence[int]] = None,
        **inputs,
    ) -> MarkerExtraction:
        scan_text = fix_ocr_digits(text)
        folded = fold_text(scan_text)

        name_matches = self._find_names(folded)
        self.logger.debug(f"{len(name_matches)} marker name match(es) after overlap resolution")

        candidates = []
        for marker, _, start, end in name_matches:
            candidates.append(
                self._read_value(text, scan_text, folded, marker, start, end, page_offsets)
            )

        candidates = self._apply_corroboration(candidates)
        if page_offsets and len(page_offsets) > 1:
            candidates = self._dedup_across_pages(candidates)

        result = MarkerExtraction(candidates=tuple(candidates))
        self.logger.info(
            f"Marker extraction: {result.total_found} occurrence(s), "
            f"{len(result.codes)} distinct marker(s), "
            f"{len(result.critical_markers)} critical-priority"
        )
        return result

    # ------------------------------------------------------------------
    # Name matching
    # ------------------------------------------------------------------

    def _find_names(self, folded: str) -> List[Tuple[MarkerDefinition, str, int, int]]:
        raw = []
        for marker, variant, pattern in self._patterns:
            for match in pattern.finditer(folded):
                raw.append((marker, variant, match.start(), match.end()))

        # Longest match wins among overlapping spans
        accepted: List[Tuple[MarkerDefinition, str, int, int]] = []
        for item in sorted(raw, key=lambda m: (-(m[3] - m[2]), m[2])):
            _, _, start, end = item
            if any(start < a_end and a_start < end for _, _, a_start, a_end in accepted):
                continue
            accepted.append(item)
        accepted.sort(key=lambda m: m[2])
        return accepted

    # ------------------------------------------------------------------
    # Value reading
    # ------------------------------------------------------------------

    def _read_value(
        self,
        text: str,
        scan_text: str,
        folded: str,
        marker: MarkerDefinition,
        start: int,
        end: int,
        page_offsets: Optional[Sequence[int]],
    ) -> MarkerCandidate:
        line_start, line_end = line_bounds(text, start)
        line = text[line_start:line_end]
        window = self.settings.MARKER_VALUE_WINDOW

        matched_name = ' '.join(text[start:end].split())
        confidence = float(BASE_CONFIDENCE)
        if matched_name == marker.name:
            confidence += EXACT_NAME_BONUS
        else:
            confidence += VARIANT_NAME_BONUS
        if any(k in folded[line_start:start] for k in HEADER_LINE_KEYWORDS):
            confidence -= HEADER_LINE_PENALTY

        match, offset, next_line = self._search_value(scan_text, end, line_end, window)
        page = page_for_offset(page_offsets, start) if page_offsets else 0

        if match is None:
            return MarkerCandidate(
                marker=marker,
                matched_name=matched_name,
                start=start,
                end=end,
                line=line.strip(),
                page=page,
                confidence=self.clamp(confidence - (BASE_CONFIDENCE - NO_VALUE_CONFIDENCE)),
            )

        unit = canonical_unit(match.group('unit'))
        # Unitless counts ("250.000") are read in the marker's catalog unit
        value = parse_lab_number(match.group('value'), unit or marker.unit)
        value_start = offset + match.start('value')
        distance = value_start - end

        if next_line:
            confidence -= NEXT_LINE_PENALTY
        elif distance <= 10:
            confidence += CLOSE_VALUE_BONUS
        elif distance <= 30:
            confidence += NEAR_VALUE_BONUS

        if unit and any(units_equivalent(unit, u) for u in marker.units):
            confidence += MARKER_UNIT_BONUS
        elif unit:
            confidence += OTHER_UNIT_BONUS

        _, value_line_end = line_bounds(text, value_start)
        has_flag = bool(ABNORMAL_GLYPH_PATTERN.search(text, end, value_line_end))

        return MarkerCandidate(
            marker=marker,
            matched_name=matched_name,
            start=start,
            end=end,
            value=value,
            value_text=match.group('value'),
            value_start=value_start,
            unit=unit,
            has_abnormal_flag=has_flag,
            line=line.strip(),
            page=page,
            confidence=self.clamp(confidence),
        )

    @staticmethod
    def _search_value(
        scan_text: str, name_end: int, line_end: int, window: int
    ) -> Tuple[Optional[re.Match], int, bool]:
        """Value on the same line first, then on the next non-empty line."""
        same_line = scan_text[name_end:min(line_end, name_end + window)]
        match = _VALUE_PATTERN.match(same_line)
        if match:
            return match, name_end, False

        if line_end >= len(scan_text):
            return None, name_end, False
        next_start = line_end + 1
        next_end = scan_text.find('\n', next_start)
        if next_end == -1:
            next_end = len(scan_text)
        next_line = scan_text[next_start:min(next_end, next_start + window)]
        match = _VALUE_PATTERN.match(next_line)
        if match:
            return match, next_start, True
        return None, name_end, False

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def _apply_corroboration(self, candidates: List[MarkerCandidate]) -> List[MarkerCandidate]:
        counts = Counter(c.code for c in candidates)
        boosted = []
        for candidate in candidates:
            if counts[candidate.code] > 1:
                candidate = _replace_confidence(
                    candidate, self.clamp(candidate.confidence + CORROBORATION_BONUS)
                )
            boosted.append(candidate)
        return boosted

    def _dedup_across_pages(self, candidates: List[MarkerCandidate]) -> List[MarkerCandidate]:
        """Same code, value and unit repeated on another page is one result."""
        first_page = {}
        kept = []
        for candidate in candidates:
            if candidate.value is None:
                kept.append(candidate)
                continue
            key = (candidate.code, candidate.value, (candidate.unit or '').lower())
            page = first_page.setdefault(key, candidate.page)
            if page != candidate.page:
                self.logger.debug(
                    f"Dropping {candidate.code}={candidate.value} repeated on page {candidate.page + 1}"
                )
                continue
            kept.append(candidate)
        return kept


def _replace_confidence(candidate: MarkerCandidate, confidence: float) -> MarkerCandidate:
    return replace(candidate, confidence=confidence)


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_extractor = MarkerExtractor()


def extract_markers(
    text: Optional[str],
    page_offsets: Optional[Sequence[int]] = None,
) -> MarkerExtraction:
    """Extract catalog markers from report text."""
    return _default_extractor.run(text, page_offsets=page_offsets)
