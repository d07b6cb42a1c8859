# ============================================================================
# src/lab_triage/validators/critical_override.py
# ============================================================================
"""
Critical Value Override

Life-threatening lab values must reach a clinician even when the
extraction confidence is poor. This stage compares every extracted
value against absolute critical thresholds and produces alerts plus an
escalation recommendation that the decision engine cannot ignore.

Escalation:
- any life-threatening alert -> immediate_escalation / emergency, bypass
- any critical alert         -> urgent_review / urgent, bypass
- only urgent alerts         -> priority_processing / urgent,
                                bypass only when confidence is low
- no alerts                  -> standard_processing / routine
"""

import logging
from typing import List, Optional, Tuple

from ..config import threshold_settings
from ..constants.critical_values import TIME_TO_ACTION, get_critical_threshold, to_threshold_unit
from ..core.context.catalog_entries import CriticalThreshold
from ..core.context.enums import AlertSeverity, EscalationLevel, MarkerCategory, OverrideRecommendation, Urgency
from ..core.context.results import (
    AbnormalResult,
    AbnormalityReport,
    ConfidenceReport,
    CriticalAlert,
    CriticalOverrideResult,
)

logger = logging.getLogger(__name__)


SEVERITY_BY_URGENCY = {
    Urgency.IMMEDIATE: AlertSeverity.LIFE_THREATENING,
    Urgency.URGENT: AlertSeverity.CRITICAL,
    Urgency.PRIORITY: AlertSeverity.URGENT,
}

UNIVERSAL_ACTIONS = (
    "Contact the patient immediately",
    "Verify patient contact details",
)

SEVERITY_ACTIONS = {
    AlertSeverity.LIFE_THREATENING: (
        "Refer to the emergency department immediately",
        "Consider calling an ambulance",
        "Critical time window: act within 1 hour",
    ),
    AlertSeverity.CRITICAL: (
        "Schedule a same-day urgent medical consultation",
        "Prepare a specialist referral",
        "Critical time window: act within 4 hours",
    ),
    AlertSeverity.URGENT: (
        "Schedule a priority medical consultation (24-48 hours)",
        "Assess the need for a specialist referral",
    ),
}

CATEGORY_ACTIONS = {
    MarkerCategory.CARDIAC: (
        "Perform an ECG immediately",
        "Assess for acute coronary syndrome",
    ),
    MarkerCategory.KIDNEY: (
        "Assess hydration status",
        "Check electrolytes and acid-base balance",
        "Consider the need for dialysis",
    ),
    MarkerCategory.LIVER: (
        "Assess for hepatic encephalopathy",
        "Check coagulation",
        "Consider hepatology referral",
    ),
    MarkerCategory.ELECTROLYTES: (
        "Continuous cardiac monitoring",
        "Gradual electrolyte correction",
        "Assess neurological status",
    ),
    MarkerCategory.THYROID: (
        "Assess for thyroid storm or myxedema coma",
        "Urgent endocrinology referral",
    ),
    MarkerCategory.LIPIDS: (
        "Assess for acute pancreatitis",
    ),
}


def recommended_actions(threshold: CriticalThreshold, value: float, severity: AlertSeverity) -> Tuple[str, ...]:
    """Universal, severity-specific and category-specific actions, in that order."""
    actions: List[str] = list(UNIVERSAL_ACTIONS)
    actions.extend(SEVERITY_ACTIONS[severity])

    if threshold.category == MarkerCategory.GLUCOSE and threshold.marker_code == "glucose_fasting":
        if threshold.critical_high is not None and value > threshold.critical_high:
            actions.extend(("Evaluate for diabetic ketoacidosis", "Hydration and electrolyte control"))
        elif threshold.critical_low is not None and value < threshold.critical_low:
            actions.extend(("Administer glucose immediately", "Assess neurological status"))
    elif threshold.category == MarkerCategory.BLOOD:
        low_crossed = threshold.critical_low is not None and value < threshold.critical_low
        if threshold.marker_code == "hemoglobin" and low_crossed:
            actions.extend(("Assess the need for transfusion", "Investigate the cause of severe anemia"))
        elif threshold.marker_code == "platelets" and low_crossed:
            actions.extend(("Bleeding risk - take precautions", "Assess the need for platelet transfusion"))
    else:
        actions.extend(CATEGORY_ACTIONS.get(threshold.category, ()))

    return tuple(actions)


class CriticalOverride:
    """
    Evaluate absolute critical thresholds and recommend escalation.

    Independent of confidence except for the priority-tier bypass,
    which only applies below PRIORITY_BYPASS_CONFIDENCE.
    """

    def __init__(self, bypass_confidence: Optional[float] = None):
        self.bypass_confidence = (
            bypass_confidence if bypass_confidence is not None
            else threshold_settings.PRIORITY_BYPASS_CONFIDENCE
        )
        self.logger = logging.getLogger(f"{__name__}.CriticalOverride")

    def evaluate(self, abnormal: AbnormalityReport, confidence: ConfidenceReport) -> CriticalOverrideResult:
        alerts = []
        for result in abnormal.results:
            alert = self._alert_for(result)
            if alert is not None:
                alerts.append(alert)

        severities = {alert.severity for alert in alerts}
        if AlertSeverity.LIFE_THREATENING in severities:
            recommendation = OverrideRecommendation.IMMEDIATE_ESCALATION
            level = EscalationLevel.EMERGENCY
            bypass = True
        elif AlertSeverity.CRITICAL in severities:
            recommendation = OverrideRecommendation.URGENT_REVIEW
            level = EscalationLevel.URGENT
            bypass = True
        elif alerts:
            recommendation = OverrideRecommendation.PRIORITY_PROCESSING
            level = EscalationLevel.URGENT
            bypass = confidence.overall_score < self.bypass_confidence
        else:
            recommendation = OverrideRecommendation.STANDARD_PROCESSING
            level = EscalationLevel.ROUTINE
            bypass = False

        override = CriticalOverrideResult(
            alerts=tuple(alerts),
            override_recommendation=recommendation,
            escalation_level=level,
            bypass_low_confidence=bypass,
        )

        if alerts:
            self.logger.warning(
                f"{len(alerts)} critical value alert(s), "
                f"{override.life_threatening_count} life-threatening: "
                f"{recommendation.value} ({level.value}, bypass={bypass})"
            )
        else:
            self.logger.debug("No critical values")
        return override

    def _alert_for(self, result: AbnormalResult) -> Optional[CriticalAlert]:
        candidate = result.marker
        if candidate.value is None:
            return None
        threshold = get_critical_threshold(candidate.code)
        if threshold is None:
            return None

        value = to_threshold_unit(candidate.value, candidate.unit, threshold)
        if value is None:
            self.logger.debug(
                f"{candidate.code}: no conversion from {candidate.unit} to {threshold.unit}, "
                f"critical limits not checked"
            )
            return None
        if not threshold.is_crossed(value):
            return None

        severity = SEVERITY_BY_URGENCY[threshold.urgency]
        return CriticalAlert(
            marker_code=threshold.marker_code,
            marker_name=threshold.marker_name,
            value=value,
            unit=threshold.unit,
            threshold=threshold,
            severity=severity,
            urgency=threshold.urgency,
            clinical_risk=threshold.clinical_significance,
            recommended_actions=recommended_actions(threshold, value, severity),
            escalation_required=(
                severity == AlertSeverity.LIFE_THREATENING or threshold.urgency == Urgency.IMMEDIATE
            ),
            time_to_action=TIME_TO_ACTION[threshold.urgency],
            original_confidence=result.confidence,
            override_reason=(
                f"Critical value detected: {value:g} {threshold.unit} "
                f"(threshold: {threshold.describe_crossing(value)})"
            ),
        )


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_override = CriticalOverride()


def evaluate_critical_values(abnormal: AbnormalityReport, confidence: ConfidenceReport) -> CriticalOverrideResult:
    """Critical-value alerts and escalation for one report."""
    return _default_override.evaluate(abnormal, confidence)
