# ============================================================================
# src/lab_triage/validators/abnormality_detector.py
# ============================================================================
"""
Abnormal Value Detection

Joins each extracted marker with its reference range and the inline
"[ * ]" glyph Chilean labs print next to flagged results.

- Abnormal if the value is outside its range OR the glyph is present
- Severity from percentage deviation beyond the violated bound:
  >= 100% severe, >= 50% moderate, > 0% mild
- Any value crossing an absolute critical threshold is severe,
  whatever its deviation
- Priority score per result, summed into a document priority tier
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..constants.critical_values import (
    crosses_critical_threshold,
    get_critical_threshold,
    to_threshold_unit,
    value_in_threshold_unit,
)
from ..core.context.enums import AbnormalitySource, MarkerPriority, PriorityTier, RangeType, Severity, ValueStatus
from ..core.context.results import (
    AbnormalResult,
    AbnormalityReport,
    MarkerCandidate,
    MarkerExtraction,
    RangeExtraction,
    ReferenceRange,
)
from ..extractors.base import Extractor
from ..utils.text_normalizer import ABNORMAL_GLYPH_PATTERN, line_bounds

logger = logging.getLogger(__name__)


PRIORITY_BASE_SCORES = {
    MarkerPriority.CRITICAL: 40,
    MarkerPriority.HIGH: 25,
    MarkerPriority.MEDIUM: 15,
    MarkerPriority.LOW: 5,
}
DEFAULT_PRIORITY_BASE = 10

SEVERITY_MULTIPLIERS = {
    Severity.SEVERE: 2.0,
    Severity.MODERATE: 1.5,
    Severity.MILD: 1.2,
    Severity.NORMAL: 1.0,
}

# (marker code, value above which, bonus); values on the critical-limit scale
# (glucose mg/dL, HbA1c %, TSH mUI/L)
CONDITION_BONUSES: Tuple[Tuple[str, float, int], ...] = (
    ("glucose_fasting", 250, 30),   # severe diabetes
    ("hba1c", 10, 25),              # very poor glucose control
    ("tsh", 10, 20),                # severe hypothyroidism
)
INDICATOR_BONUS = 10

SEVERE_DEVIATION = 100.0
MODERATE_DEVIATION = 50.0

BOTH_SIGNALS_BONUS = 10
NO_SIGNAL_PENALTY = 20


def severity_from_deviation(deviation_percent: Optional[float]) -> Severity:
    """
    Map percentage deviation to severity.

    Deviation is rounded to 6 decimals first so 50% and 100% computed
    from decimal bounds land on their band exactly.
    """
    if deviation_percent is None:
        return Severity.NORMAL
    deviation = round(deviation_percent, 6)
    if deviation >= SEVERE_DEVIATION:
        return Severity.SEVERE
    if deviation >= MODERATE_DEVIATION:
        return Severity.MODERATE
    if deviation > 0:
        return Severity.MILD
    return Severity.NORMAL


def evaluate_against_range(value: float, reference_range: ReferenceRange) -> Tuple[ValueStatus, Optional[float]]:
    """
    Compare a value with a range.

    Returns:
        (status, deviation percent beyond the violated bound or None when in range)
    """
    low, high = reference_range.min_value, reference_range.max_value
    range_type = reference_range.range_type

    if range_type == RangeType.BOUNDED:
        span = high - low
        if value > high:
            return ValueStatus.HIGH, (value - high) / span * 100 if span > 0 else 100.0
        if value < low:
            return ValueStatus.LOW, (low - value) / span * 100 if span > 0 else 100.0
        return ValueStatus.NORMAL, None

    if range_type == RangeType.UPPER_LIMIT:
        if value > high:
            return ValueStatus.HIGH, _relative(value - high, high)
        return ValueStatus.NORMAL, None

    if range_type == RangeType.LOWER_LIMIT:
        if value < low:
            return ValueStatus.LOW, _relative(low - value, low)
        return ValueStatus.NORMAL, None

    # exact / target value
    if abs(value - low) < 0.01:
        return ValueStatus.NORMAL, None
    status = ValueStatus.HIGH if value > low else ValueStatus.LOW
    return status, _relative(abs(value - low), low)


def _relative(distance: float, bound: float) -> float:
    if bound == 0:
        return 100.0
    return distance / abs(bound) * 100


def priority_tier(score: int) -> PriorityTier:
    if score > 50:
        return PriorityTier.HIGH
    if score >= 20:
        return PriorityTier.MEDIUM
    if score > 0:
        return PriorityTier.LOW
    return PriorityTier.NORMAL


class AbnormalityDetector(Extractor):
    """Classify every marker occurrence as normal or abnormal."""

    def get_name(self) -> str:
        return "AbnormalityDetector"

    def empty_result(self) -> AbnormalityReport:
        return AbnormalityReport()

    def detect(
        self,
        text: Optional[str],
        markers: MarkerExtraction,
        ranges: RangeExtraction,
        errors: Optional[List[str]] = None,
    ) -> AbnormalityReport:
        """Join markers with ranges and glyphs; never raises."""
        return self.run(text, errors=errors, markers=markers, ranges=ranges)

    def extract(
        self,
        text: str,
        markers: Optional[MarkerExtraction] = None,
        ranges: Optional[RangeExtraction] = None,
        **inputs,
    ) -> AbnormalityReport:
        markers = markers or MarkerExtraction()
        ranges = ranges or RangeExtraction()
        if not markers.candidates:
            return AbnormalityReport()

        results = []
        for index, candidate in enumerate(markers.candidates):
            next_marker_start = (
                markers.candidates[index + 1].start
                if index + 1 < len(markers.candidates) else len(text)
            )
            results.append(self._evaluate(text, candidate, ranges.ranges, next_marker_start))

        overall = min(100, sum(r.priority_score for r in results))
        report = AbnormalityReport(
            results=tuple(results),
            overall_priority_score=overall,
            priority_tier=priority_tier(overall),
        )
        self.logger.info(
            f"Abnormality detection: {report.total_abnormalities}/{len(results)} abnormal, "
            f"{len(report.critical_abnormalities)} critical, priority {overall} ({report.priority_tier.value})"
        )
        return report

    def _evaluate(
        self,
        text: str,
        candidate: MarkerCandidate,
        ranges: Sequence[ReferenceRange],
        next_marker_start: int,
    ) -> AbnormalResult:
        reference_range = self.match_range(text, candidate, ranges, next_marker_start)

        if candidate.value is None:
            return AbnormalResult(
                marker=candidate,
                reference_range=reference_range,
                has_indicator=False,
                is_abnormal=False,
                status=ValueStatus.UNKNOWN,
                severity=Severity.NORMAL,
                abnormality_source=AbnormalitySource.NONE,
                deviation_percent=None,
                is_critical_value=False,
                priority_score=0,
                confidence=0.0,
            )

        value = candidate.value
        has_indicator = candidate.has_abnormal_flag or self._glyph_after(text, candidate)

        status, deviation = (
            evaluate_against_range(value, reference_range)
            if reference_range is not None else (ValueStatus.UNKNOWN, None)
        )
        out_of_range = status in (ValueStatus.HIGH, ValueStatus.LOW)

        if out_of_range and has_indicator:
            source = AbnormalitySource.BOTH
        elif out_of_range:
            source = AbnormalitySource.RANGE
        elif has_indicator:
            source = AbnormalitySource.INDICATOR
        else:
            source = AbnormalitySource.NONE

        severity = severity_from_deviation(deviation) if out_of_range else Severity.NORMAL
        if has_indicator and severity == Severity.NORMAL:
            severity = Severity.MILD

        is_critical = crosses_critical_threshold(candidate.code, value, candidate.unit)
        if is_critical:
            severity = Severity.SEVERE
            if status == ValueStatus.UNKNOWN:
                status = self._critical_direction(candidate)

        is_abnormal = out_of_range or has_indicator or is_critical

        return AbnormalResult(
            marker=candidate,
            reference_range=reference_range,
            has_indicator=has_indicator,
            is_abnormal=is_abnormal,
            status=status,
            severity=severity,
            abnormality_source=source,
            deviation_percent=round(deviation, 2) if deviation is not None else None,
            is_critical_value=is_critical,
            priority_score=self.priority_score(candidate, severity, is_abnormal, has_indicator),
            confidence=self._confidence(candidate, reference_range, source),
        )

    def match_range(
        self,
        text: str,
        candidate: MarkerCandidate,
        ranges: Sequence[ReferenceRange],
        next_marker_start: int,
    ) -> Optional[ReferenceRange]:
        """
        Nearest range after the marker's value, before the next marker.

        Ungendered ranges win over gendered ones, then same-line ranges
        over later lines.
        """
        anchor = candidate.end
        if candidate.value_start is not None and candidate.value_text:
            anchor = candidate.value_start + len(candidate.value_text)
        limit = min(next_marker_start, candidate.end + self.settings.RANGE_SEARCH_WINDOW)
        _, line_end = line_bounds(text, anchor)

        eligible: List[ReferenceRange] = [
            r for r in ranges if anchor <= r.start < limit
        ]
        if not eligible:
            return None

        def _rank(reference_range: ReferenceRange):
            return (
                reference_range.gender is not None,     # ungendered first
                reference_range.start >= line_end,      # then same line
                reference_range.start,
            )

        return min(eligible, key=_rank)

    @staticmethod
    def _glyph_after(text: str, candidate: MarkerCandidate) -> bool:
        anchor = candidate.value_start if candidate.value_start is not None else candidate.end
        _, line_end = line_bounds(text, anchor)
        return bool(ABNORMAL_GLYPH_PATTERN.search(text, candidate.end, line_end))

    @staticmethod
    def _critical_direction(candidate: MarkerCandidate) -> ValueStatus:
        threshold = get_critical_threshold(candidate.code)
        value = to_threshold_unit(candidate.value, candidate.unit, threshold)
        if threshold.critical_high is not None and value > threshold.critical_high:
            return ValueStatus.HIGH
        return ValueStatus.LOW

    @staticmethod
    def priority_score(
        candidate: MarkerCandidate,
        severity: Severity,
        is_abnormal: bool,
        has_indicator: bool,
    ) -> int:
        """Clinical priority contribution of one result (0-100)."""
        if not is_abnormal or candidate.value is None:
            return 0

        score = PRIORITY_BASE_SCORES.get(candidate.marker.priority, DEFAULT_PRIORITY_BASE)
        score *= SEVERITY_MULTIPLIERS[severity]

        for code, above, bonus in CONDITION_BONUSES:
            if candidate.code != code:
                continue
            value = value_in_threshold_unit(code, candidate.value, candidate.unit)
            if value is not None and value > above:
                score += bonus
            break

        if has_indicator:
            score += INDICATOR_BONUS

        return min(100, int(round(score)))

    def _confidence(
        self,
        candidate: MarkerCandidate,
        reference_range: Optional[ReferenceRange],
        source: AbnormalitySource,
    ) -> float:
        confidence = candidate.confidence
        if reference_range is not None:
            confidence = (candidate.confidence + reference_range.confidence) / 2
        if source == AbnormalitySource.BOTH:
            confidence += BOTH_SIGNALS_BONUS
        if reference_range is None and source == AbnormalitySource.NONE:
            confidence -= NO_SIGNAL_PENALTY
        return self.clamp(round(confidence, 2))


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_detector = AbnormalityDetector()


def detect_abnormalities(
    text: Optional[str],
    markers: MarkerExtraction,
    ranges: RangeExtraction,
) -> AbnormalityReport:
    """Detect abnormal values from already extracted markers and ranges."""
    return _default_detector.detect(text, markers, ranges)
