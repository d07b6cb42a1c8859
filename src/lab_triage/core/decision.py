# ============================================================================
# src/lab_triage/core/decision.py
# ============================================================================
"""
Auto-Approval Decision Engine

Turns the confidence report, abnormality report, identity extraction and
critical override into one auditable verdict:

    auto_process | manual_review | escalate | reject

Tentative approval (overall >= 85) is only ever tightened by the
criteria checks, never loosened. Critical values always reach a human.
"""

import logging
from typing import List, Optional, Tuple

from ..config import ThresholdSettings, threshold_settings
from ..constants.risk_factors import DECISION_TRIGGER_PHRASES
from .context.enums import OverrideRecommendation, PriorityTier, RiskLevel, Verdict
from .context.results import (
    AbnormalityReport,
    AuditTrail,
    ConfidenceReport,
    CriticalOverrideResult,
    Decision,
    IdentityExtraction,
    ProcessedSummary,
)

logger = logging.getLogger(__name__)


DENY_LOW_CONFIDENCE = "overall confidence below auto-approval threshold"
DENY_IDENTITY = "identity confidence too low"
DENY_MARKERS = "health marker confidence too low"
DENY_COMPLETENESS = "data completeness too low"
DENY_ACCURACY = "accuracy too low"
DENY_CRITICAL_COUNT = "too many critical abnormalities"
DENY_RISK_FACTORS = "too many risk factors"
DENY_TRIGGER = "manual review trigger"

SAFEGUARD_CRITICAL_VALUES = "critical values require physician review"
SAFEGUARD_MANY_CRITICAL = "multiple critical abnormalities require medical review"
SAFEGUARD_APPROVED = (
    "confidence validated by multi-factor scoring",
    "safety thresholds verified",
    "risk factors within acceptable limits",
)
SAFEGUARD_ABNORMAL_INCLUDED = "abnormalities detected - included in automatic prioritization"
VERDICT_SAFEGUARDS = {
    Verdict.AUTO_PROCESS: "processed automatically - results remain available for clinical audit",
    Verdict.MANUAL_REVIEW: "human review required before processing",
    Verdict.ESCALATE: "escalated to clinical staff ahead of the review queue",
    Verdict.REJECT: "rejected - requires re-extraction or manual data entry",
}

ESCALATING_OVERRIDES = (
    OverrideRecommendation.IMMEDIATE_ESCALATION,
    OverrideRecommendation.URGENT_REVIEW,
)


class DecisionEngine:
    """
    Auditable auto-approval state machine.

    Every check is evaluated and recorded, whether it passes or denies,
    so the audit trail of an approval lists every passed criterion.
    """

    def __init__(self, thresholds: Optional[ThresholdSettings] = None):
        self.thresholds = thresholds or threshold_settings
        self.logger = logging.getLogger(f"{__name__}.DecisionEngine")

    def decide(
        self,
        confidence: ConfidenceReport,
        abnormal: AbnormalityReport,
        identity: IdentityExtraction,
        override: Optional[CriticalOverrideResult] = None,
    ) -> Decision:
        override = override or CriticalOverrideResult()
        passed, deny_reasons, safeguards = self.check_criteria(confidence, abnormal)
        approved = not deny_reasons

        risk_level = self.risk_level(abnormal, confidence)
        verdict = self.recommend(approved, risk_level, confidence.overall_score)

        overrides: List[str] = []
        verdict = self._apply_critical_precedence(verdict, override, overrides)

        if override.has_critical_values:
            safeguards.append(SAFEGUARD_CRITICAL_VALUES)
        if approved:
            safeguards.extend(SAFEGUARD_APPROVED)
            if abnormal.total_abnormalities > 0:
                safeguards.append(SAFEGUARD_ABNORMAL_INCLUDED)
        safeguards.append(VERDICT_SAFEGUARDS[verdict])

        if identity.multiple_identities:
            self.logger.warning(
                f"{len(identity.distinct_valid)} distinct identities in one report"
            )

        decision = Decision(
            verdict=verdict,
            approved=approved,
            risk_level=risk_level,
            confidence_score=confidence.overall_score,
            rationale=self._rationale(verdict, confidence.overall_score, deny_reasons, overrides),
            audit_trail=AuditTrail(
                passed_criteria=tuple(passed),
                deny_reasons=tuple(deny_reasons),
                overrides=tuple(overrides),
            ),
            safeguards=tuple(dict.fromkeys(safeguards)),
        )
        self.logger.info(
            f"Decision: {verdict.value} (approved={approved}, risk={risk_level.value}, "
            f"confidence={confidence.overall_score}, {len(deny_reasons)} deny reason(s))"
        )
        return decision

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------

    def check_criteria(
        self,
        confidence: ConfidenceReport,
        abnormal: AbnormalityReport,
    ) -> Tuple[List[str], List[str], List[str]]:
        """
        Evaluate the tentative approval and each tightening check in order.

        Returns:
            (passed criteria, deny reasons, safeguards)
        """
        t = self.thresholds
        passed: List[str] = []
        denied: List[str] = []
        safeguards: List[str] = []

        def check(ok: bool, passed_text: str, deny_text: str):
            if ok:
                passed.append(passed_text)
            else:
                denied.append(deny_text)

        overall = confidence.overall_score
        check(
            overall >= t.AUTO_APPROVE_THRESHOLD,
            f"overall confidence {overall} >= {t.AUTO_APPROVE_THRESHOLD:g}",
            f"{DENY_LOW_CONFIDENCE} ({overall} < {t.AUTO_APPROVE_THRESHOLD:g})",
        )

        identity_score = confidence.identity.score
        check(
            identity_score >= t.MIN_IDENTITY_SCORE,
            f"identity confidence {identity_score:g} >= {t.MIN_IDENTITY_SCORE:g}",
            f"{DENY_IDENTITY} ({identity_score:g} < {t.MIN_IDENTITY_SCORE:g})",
        )

        marker_score = confidence.markers.score
        check(
            marker_score >= t.MIN_MARKER_SCORE,
            f"health marker confidence {marker_score:g} >= {t.MIN_MARKER_SCORE:g}",
            f"{DENY_MARKERS} ({marker_score:g} < {t.MIN_MARKER_SCORE:g})",
        )

        completeness = confidence.quality.completeness
        check(
            completeness >= t.MIN_COMPLETENESS,
            f"completeness {completeness:g} >= {t.MIN_COMPLETENESS:g}",
            f"{DENY_COMPLETENESS} ({completeness:g} < {t.MIN_COMPLETENESS:g})",
        )

        accuracy = confidence.quality.accuracy
        check(
            accuracy >= t.MIN_ACCURACY,
            f"accuracy {accuracy:g} >= {t.MIN_ACCURACY:g}",
            f"{DENY_ACCURACY} ({accuracy:g} < {t.MIN_ACCURACY:g})",
        )

        critical_count = len(abnormal.critical_abnormalities)
        check(
            critical_count <= t.MAX_CRITICAL_ABNORMALITIES,
            f"critical abnormalities {critical_count} <= {t.MAX_CRITICAL_ABNORMALITIES}",
            f"{DENY_CRITICAL_COUNT} ({critical_count} > {t.MAX_CRITICAL_ABNORMALITIES})",
        )
        if critical_count > t.MAX_CRITICAL_ABNORMALITIES:
            safeguards.append(SAFEGUARD_MANY_CRITICAL)

        risk_count = len(confidence.risk_factors)
        check(
            risk_count <= t.MAX_RISK_FACTORS,
            f"risk factors {risk_count} <= {t.MAX_RISK_FACTORS}",
            f"{DENY_RISK_FACTORS} ({risk_count} > {t.MAX_RISK_FACTORS})",
        )

        triggers = self.triggered_phrases(confidence.risk_factors)
        for trigger in triggers:
            denied.append(f"{DENY_TRIGGER}: {trigger}")
            safeguards.append(f"{trigger} requires human validation")
        if not triggers:
            passed.append("no manual review triggers")

        return passed, denied, safeguards

    @staticmethod
    def triggered_phrases(risk_factors: Tuple[str, ...]) -> List[str]:
        """Trigger phrases present in any risk factor (case-insensitive)."""
        lowered = [factor.lower() for factor in risk_factors]
        return [
            phrase for phrase in DECISION_TRIGGER_PHRASES
            if any(phrase.lower() in factor for factor in lowered)
        ]

    @staticmethod
    def risk_level(abnormal: AbnormalityReport, confidence: ConfidenceReport) -> RiskLevel:
        risk_count = len(confidence.risk_factors)
        if abnormal.critical_abnormalities or risk_count > 3:
            return RiskLevel.CRITICAL
        if abnormal.severe_abnormalities or risk_count > 1:
            return RiskLevel.HIGH
        if abnormal.total_abnormalities > 0 or risk_count > 0:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def recommend(self, approved: bool, risk_level: RiskLevel, overall: float) -> Verdict:
        if approved and risk_level == RiskLevel.LOW:
            return Verdict.AUTO_PROCESS
        if overall >= self.thresholds.MANUAL_REVIEW_THRESHOLD and risk_level == RiskLevel.CRITICAL:
            return Verdict.ESCALATE
        if overall >= self.thresholds.MANUAL_REVIEW_THRESHOLD:
            return Verdict.MANUAL_REVIEW
        return Verdict.REJECT

    def _apply_critical_precedence(
        self,
        verdict: Verdict,
        override: CriticalOverrideResult,
        overrides: List[str],
    ) -> Verdict:
        """Critical values are never silently rejected."""
        if not override.has_critical_values:
            return verdict

        recommendation = override.override_recommendation
        if override.bypass_low_confidence and recommendation in ESCALATING_OVERRIDES:
            if verdict != Verdict.ESCALATE:
                overrides.append(
                    f"critical override ({recommendation.value}, {override.escalation_level.value}): "
                    f"{verdict.value} -> {Verdict.ESCALATE.value}"
                )
                self.logger.warning(
                    f"Critical values force escalation, overriding {verdict.value}"
                )
            return Verdict.ESCALATE

        if override.bypass_low_confidence and verdict == Verdict.REJECT:
            overrides.append(
                f"critical override ({recommendation.value}): "
                f"{Verdict.REJECT.value} -> {Verdict.MANUAL_REVIEW.value}"
            )
            return Verdict.MANUAL_REVIEW

        overrides.append(
            f"critical values noted ({len(override.alerts)} alert(s), {recommendation.value})"
        )
        return verdict

    @staticmethod
    def _rationale(verdict: Verdict, overall: int, deny_reasons: List[str], overrides: List[str]) -> str:
        if verdict == Verdict.AUTO_PROCESS:
            return f"All auto-approval criteria met with {overall}% confidence"
        parts = []
        if overrides:
            parts.append(overrides[0])
        if deny_reasons:
            parts.append("; ".join(deny_reasons))
        if not parts:
            parts.append(f"risk level requires human review at {overall}% confidence")
        return f"{verdict.value}: " + " | ".join(parts)

    # ------------------------------------------------------------------
    # Processed summary
    # ------------------------------------------------------------------

    def build_summary(
        self,
        decision: Decision,
        abnormal: AbnormalityReport,
        identity: IdentityExtraction,
    ) -> ProcessedSummary:
        """Summary of an auto-processed report for downstream prioritization."""
        recommendations: List[str] = []
        next_actions: List[str] = []

        critical = abnormal.critical_abnormalities
        severe = abnormal.severe_abnormalities
        if critical:
            recommendations.append(f"{len(critical)} critical abnormalities detected")
            next_actions.extend(("Contact the patient immediately", "Schedule an urgent medical consultation"))
        if severe:
            recommendations.append(f"{len(severe)} severe abnormalities detected")
            next_actions.append("Schedule medical follow-up within 48-72 hours")

        if abnormal.total_abnormalities > 0:
            recommendations.append(f"{abnormal.total_abnormalities} abnormal values found in total")
            for result in abnormal.abnormal_results:
                unit = f" {result.marker.unit}" if result.marker.unit else ""
                recommendations.append(
                    f"{result.marker.marker.name}: {result.marker.value:g}{unit} "
                    f"({result.status.value}, {result.severity.value})"
                )
        else:
            recommendations.append("All values within normal ranges")
            next_actions.append("Continue with routine checkups")

        recommendations.append(f"Processed automatically with {decision.confidence_score}% confidence")

        best = identity.best_match
        return ProcessedSummary(
            priority_level=abnormal.priority_tier if abnormal.results else PriorityTier.NORMAL,
            patient_id=best.formatted if best is not None else None,
            abnormal_count=abnormal.total_abnormalities,
            critical_count=len(critical),
            recommendations=tuple(recommendations),
            next_actions=tuple(dict.fromkeys(next_actions)),
        )


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_engine = DecisionEngine()


def make_decision(
    confidence: ConfidenceReport,
    abnormal: AbnormalityReport,
    identity: IdentityExtraction,
    override: Optional[CriticalOverrideResult] = None,
) -> Decision:
    """Auto-approval decision with the default thresholds."""
    return _default_engine.decide(confidence, abnormal, identity, override)
