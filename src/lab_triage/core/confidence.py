# ============================================================================
# src/lab_triage/core/confidence.py
# ============================================================================
"""
Multi-Factor Confidence Scoring

Four independent 0-100 component scores, combined with fixed weights:
- identity (patient RUT)
- markers (health marker coverage)
- ranges (reference range coverage)
- abnormal_values (value extraction and abnormality signals)

Plus quality metrics (completeness, accuracy, consistency), a
severity-prefixed risk factor list and a recommendation band.
"""

import logging
import statistics
from typing import Callable, List, Optional, Tuple

from ..config import ScoringSettings, ThresholdSettings, scoring_settings, threshold_settings
from ..constants.risk_factors import (
    ISSUE_CANNOT_VALIDATE,
    ISSUE_COMPONENT_FAILED,
    ISSUE_CRITICAL_ABNORMALITIES,
    ISSUE_FEW_MARKERS,
    ISSUE_INVALID_IDENTITY,
    ISSUE_LIMITED_RANGES,
    ISSUE_LOW_EXTRACTION_RATE,
    ISSUE_MANY_IDENTITY_CANDIDATES,
    ISSUE_MULTIPLE_IDENTITIES,
    ISSUE_NO_IDENTITY,
    ISSUE_NO_LAB_VALUES,
    ISSUE_NO_MARKERS,
    ISSUE_NO_RANGES,
    risk_factor_for,
)
from .context.enums import ConfidenceRecommendation, IdentitySource
from .context.results import (
    AbnormalityReport,
    ComponentConfidence,
    ConfidenceReport,
    DecisionThresholds,
    IdentityExtraction,
    MarkerExtraction,
    QualityMetrics,
    RangeExtraction,
)

logger = logging.getLogger(__name__)


# Identity
INVALID_IDENTITY_PENALTY = 40
MANY_CANDIDATES_PENALTY = 15
MANY_CANDIDATES = 3
TRUSTED_SOURCE_BONUS = 5

# Markers
CRITICAL_MARKER_BONUS = 5
HIGH_PRIORITY_MARKER_BONUS = 3
COMPREHENSIVE_MARKER_COUNT = 10
COMPREHENSIVE_MARKER_BONUS = 10

# Ranges
NO_RANGES_SCORE = 30
MANY_RANGES_BONUS = 15      # >= 5 ranges
SEVERAL_RANGES_BONUS = 10   # >= 3 ranges
SINGLE_RANGE_PENALTY = 10
CORROBORATED_RANGE_BONUS = 10

# Abnormal values
NO_RESULTS_SCORE = 20
HIGH_RATE_BONUS = 15        # >= 0.8 values extracted
GOOD_RATE_BONUS = 10        # >= 0.6
LOW_RATE_PENALTY = 20       # < 0.4
CRITICAL_FINDING_BONUS = 10
SEVERE_FINDING_BONUS = 5


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


class ConfidenceScorer:
    """
    Score the reliability of one report's extraction.

    Each component is evaluated in isolation; a component that fails
    scores 0 with an issue instead of failing the whole report.
    """

    def __init__(
        self,
        scoring: Optional[ScoringSettings] = None,
        thresholds: Optional[ThresholdSettings] = None,
    ):
        self.scoring = scoring or scoring_settings
        self.thresholds = thresholds or threshold_settings
        self.logger = logging.getLogger(f"{__name__}.ConfidenceScorer")

    def score(
        self,
        identity: IdentityExtraction,
        markers: MarkerExtraction,
        ranges: RangeExtraction,
        abnormal: AbnormalityReport,
    ) -> ConfidenceReport:
        identity_conf = self._safe("identity", self.scoring.IDENTITY_WEIGHT, self.score_identity, identity)
        markers_conf = self._safe("markers", self.scoring.MARKERS_WEIGHT, self.score_markers, markers)
        ranges_conf = self._safe("ranges", self.scoring.RANGES_WEIGHT, self.score_ranges, ranges)
        abnormal_conf = self._safe(
            "abnormal_values", self.scoring.ABNORMAL_WEIGHT, self.score_abnormal_values, abnormal
        )
        components = (identity_conf, markers_conf, ranges_conf, abnormal_conf)

        overall = int(round(sum(c.score * c.weight for c in components)))
        quality = self.quality_metrics(components)
        risk_factors = self.risk_factors(components)
        recommendation = self.recommend(overall)

        self.logger.info(
            f"Confidence {overall} -> {recommendation.value} "
            f"(identity={identity_conf.score:.0f}, markers={markers_conf.score:.0f}, "
            f"ranges={ranges_conf.score:.0f}, abnormal={abnormal_conf.score:.0f}, "
            f"{len(risk_factors)} risk factor(s))"
        )

        return ConfidenceReport(
            identity=identity_conf,
            markers=markers_conf,
            ranges=ranges_conf,
            abnormal_values=abnormal_conf,
            overall_score=overall,
            quality=quality,
            risk_factors=risk_factors,
            thresholds=DecisionThresholds(
                auto_approve=self.thresholds.AUTO_APPROVE_THRESHOLD,
                manual_review=self.thresholds.MANUAL_REVIEW_THRESHOLD,
                reject=self.thresholds.REJECT_THRESHOLD,
            ),
            recommendation=recommendation,
        )

    def empty_report(self) -> ConfidenceReport:
        """Report for a document with no text at all: every component 0, reject."""
        components = (
            ComponentConfidence(0.0, self.scoring.IDENTITY_WEIGHT, (ISSUE_NO_IDENTITY,)),
            ComponentConfidence(0.0, self.scoring.MARKERS_WEIGHT, (ISSUE_NO_MARKERS,)),
            ComponentConfidence(0.0, self.scoring.RANGES_WEIGHT, (ISSUE_NO_RANGES, ISSUE_CANNOT_VALIDATE)),
            ComponentConfidence(0.0, self.scoring.ABNORMAL_WEIGHT, (ISSUE_NO_LAB_VALUES,)),
        )
        return ConfidenceReport(
            identity=components[0],
            markers=components[1],
            ranges=components[2],
            abnormal_values=components[3],
            overall_score=0,
            quality=QualityMetrics(completeness=0.0, accuracy=0.0, consistency=100.0),
            risk_factors=self.risk_factors(components),
            thresholds=DecisionThresholds(
                auto_approve=self.thresholds.AUTO_APPROVE_THRESHOLD,
                manual_review=self.thresholds.MANUAL_REVIEW_THRESHOLD,
                reject=self.thresholds.REJECT_THRESHOLD,
            ),
            recommendation=ConfidenceRecommendation.REJECT,
        )

    def _safe(self, name: str, weight: float, evaluate: Callable, result) -> ComponentConfidence:
        try:
            score, issues = evaluate(result)
        except Exception as e:
            self.logger.error(f"Confidence component '{name}' failed: {str(e)}", exc_info=True)
            return ComponentConfidence(score=0.0, weight=weight, issues=(ISSUE_COMPONENT_FAILED,))
        return ComponentConfidence(score=float(round(_clamp(score))), weight=weight, issues=tuple(issues))

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def score_identity(self, identity: IdentityExtraction) -> Tuple[float, List[str]]:
        best = identity.best_match
        if best is None:
            return 0.0, [ISSUE_NO_IDENTITY]

        issues = []
        score = best.confidence
        if not best.is_valid:
            score = max(0.0, score - INVALID_IDENTITY_PENALTY)
            issues.append(ISSUE_INVALID_IDENTITY)
        if len(identity.candidates) > MANY_CANDIDATES:
            score = max(0.0, score - MANY_CANDIDATES_PENALTY)
            issues.append(ISSUE_MANY_IDENTITY_CANDIDATES)
        if identity.multiple_identities:
            issues.append(ISSUE_MULTIPLE_IDENTITIES)
        if best.source in (IdentitySource.FORM, IdentitySource.HEADER):
            score = min(100.0, score + TRUSTED_SOURCE_BONUS)
        return score, issues

    def score_markers(self, markers: MarkerExtraction) -> Tuple[float, List[str]]:
        if markers.total_found == 0:
            return 0.0, [ISSUE_NO_MARKERS]

        issues = []
        score = statistics.mean(c.confidence for c in markers.candidates)
        critical_codes = {c.code for c in markers.critical_markers}
        high_priority_codes = {c.code for c in markers.high_priority_markers}
        score = min(100.0, score + CRITICAL_MARKER_BONUS * len(critical_codes))
        score = min(100.0, score + HIGH_PRIORITY_MARKER_BONUS * len(high_priority_codes))

        if markers.total_found < self.thresholds.MIN_MARKER_COUNT:
            score = min(score, self.thresholds.FEW_MARKERS_SCORE_CAP)
            issues.append(ISSUE_FEW_MARKERS)
        if markers.total_found >= COMPREHENSIVE_MARKER_COUNT:
            score = min(100.0, score + COMPREHENSIVE_MARKER_BONUS)
        return score, issues

    def score_ranges(self, ranges: RangeExtraction) -> Tuple[float, List[str]]:
        # ranges may be printed implicitly, so absence is not fatal
        if ranges.total_found == 0:
            return float(NO_RANGES_SCORE), [ISSUE_NO_RANGES, ISSUE_CANNOT_VALIDATE]

        issues = []
        score = statistics.mean(r.confidence for r in ranges.ranges)
        if ranges.total_found >= 5:
            score = min(100.0, score + MANY_RANGES_BONUS)
        elif ranges.total_found >= 3:
            score = min(100.0, score + SEVERAL_RANGES_BONUS)
        elif ranges.total_found == 1:
            score = max(0.0, score - SINGLE_RANGE_PENALTY)
            issues.append(ISSUE_LIMITED_RANGES)

        if any(r.corroborated for r in ranges.ranges):
            score = min(100.0, score + CORROBORATED_RANGE_BONUS)
        return score, issues

    def score_abnormal_values(self, abnormal: AbnormalityReport) -> Tuple[float, List[str]]:
        total = len(abnormal.results)
        if total == 0:
            return float(NO_RESULTS_SCORE), [ISSUE_NO_LAB_VALUES]

        issues = []
        score = statistics.mean(r.confidence for r in abnormal.results)

        extraction_rate = sum(1 for r in abnormal.results if r.has_value) / total
        if extraction_rate >= 0.8:
            score = min(100.0, score + HIGH_RATE_BONUS)
        elif extraction_rate >= 0.6:
            score = min(100.0, score + GOOD_RATE_BONUS)
        elif extraction_rate < 0.4:
            score = max(0.0, score - LOW_RATE_PENALTY)
            issues.append(ISSUE_LOW_EXTRACTION_RATE)

        if abnormal.critical_abnormalities:
            score = min(100.0, score + CRITICAL_FINDING_BONUS)
            issues.append(ISSUE_CRITICAL_ABNORMALITIES)
        if abnormal.severe_abnormalities:
            score = min(100.0, score + SEVERE_FINDING_BONUS)
        return score, issues

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @staticmethod
    def quality_metrics(components: Tuple[ComponentConfidence, ...]) -> QualityMetrics:
        """
        Completeness, accuracy and consistency of the four components.

        components must be ordered (identity, markers, ranges, abnormal_values).
        Accuracy is the unweighted mean of the component scores.
        """
        identity, *others = components
        completeness = (25.0 if identity.score > 0 else 0.0) + sum(
            min(25.0, c.score * 0.25) for c in others
        )
        scores = [c.score for c in components]
        accuracy = statistics.mean(scores)
        consistency = max(0.0, 100.0 - statistics.pstdev(scores))
        return QualityMetrics(
            completeness=float(round(completeness)),
            accuracy=float(round(accuracy)),
            consistency=float(round(consistency)),
        )

    @staticmethod
    def risk_factors(components: Tuple[ComponentConfidence, ...]) -> Tuple[str, ...]:
        """Severity-prefixed risk factors, one per distinct tabled issue."""
        rendered = []
        for component in components:
            for issue in component.issues:
                factor = risk_factor_for(issue)
                if factor is not None and factor not in rendered:
                    rendered.append(factor)
        return tuple(rendered)

    def recommend(self, overall: float) -> ConfidenceRecommendation:
        if overall >= self.thresholds.AUTO_APPROVE_THRESHOLD:
            return ConfidenceRecommendation.AUTO_APPROVE
        if overall >= self.thresholds.MANUAL_REVIEW_THRESHOLD:
            return ConfidenceRecommendation.MANUAL_REVIEW
        return ConfidenceRecommendation.REJECT


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_scorer = ConfidenceScorer()


def calculate_confidence(
    identity: IdentityExtraction,
    markers: MarkerExtraction,
    ranges: RangeExtraction,
    abnormal: AbnormalityReport,
) -> ConfidenceReport:
    """Score one report's extraction with the default settings."""
    return _default_scorer.score(identity, markers, ranges, abnormal)
