# ============================================================================
# FILE: tests/unit/test_critical_override.py
# ============================================================================
"""
Unit tests for the critical value override
"""

from lab_triage.constants.critical_values import (
    crosses_critical_threshold,
    get_critical_threshold,
    to_threshold_unit,
)
from lab_triage.core.context.enums import (
    AlertSeverity,
    EscalationLevel,
    OverrideRecommendation,
    Urgency,
)
from lab_triage.core.context.results import AbnormalityReport
from lab_triage.extractors.marker_extractor import extract_markers
from lab_triage.extractors.range_extractor import extract_ranges
from lab_triage.validators.abnormality_detector import detect_abnormalities
from lab_triage.validators.critical_override import (
    UNIVERSAL_ACTIONS,
    CriticalOverride,
    evaluate_critical_values,
)


def _abnormal(text):
    return detect_abnormalities(text, extract_markers(text), extract_ranges(text))


# ============================================================================
# THRESHOLDS
# ============================================================================

def test_threshold_is_strict():
    """Test a value equal to the limit is not critical"""
    assert not crosses_critical_threshold("glucose_fasting", 400)
    assert crosses_critical_threshold("glucose_fasting", 400.5)
    assert crosses_critical_threshold("glucose_fasting", 45)
    assert not crosses_critical_threshold("glucose_fasting", None)
    assert not crosses_critical_threshold("cholesterol_total", 900)


def test_unit_scaling():
    """Test x10^3/uL counts are compared in /mm³"""
    threshold = get_critical_threshold("platelets")

    assert to_threshold_unit(15, "x10^3/uL", threshold) == 15000
    assert to_threshold_unit(15000, "/mm3", threshold) == 15000
    assert crosses_critical_threshold("platelets", 15, "x10^3/uL")


def test_molar_glucose_converted():
    """Test mmol/L glucose is compared against the mg/dL limits"""
    threshold = get_critical_threshold("glucose_fasting")

    assert to_threshold_unit(5.5, "mmol/L", threshold) == 99.0
    assert not crosses_critical_threshold("glucose_fasting", 5.5, "mmol/L")
    assert crosses_critical_threshold("glucose_fasting", 2.5, "mmol/L")
    assert crosses_critical_threshold("glucose_fasting", 25, "mmol/L")


def test_unconvertible_unit_not_compared():
    """Test a unit with no known conversion never crosses a limit"""
    threshold = get_critical_threshold("hemoglobin")

    assert to_threshold_unit(4.0, "mmol/L", threshold) is None
    assert not crosses_critical_threshold("hemoglobin", 4.0, "mmol/L")
    assert crosses_critical_threshold("hemoglobin", 4.0, "g/dL")


# ============================================================================
# OVERRIDE
# ============================================================================

def test_life_threatening_glucose(make_confidence):
    """Test glucose 450 forces immediate escalation"""
    override = evaluate_critical_values(
        _abnormal("GLICEMIA 450 mg/dL [ * ] 74 - 106"), make_confidence(overall=95)
    )

    assert override.override_recommendation == OverrideRecommendation.IMMEDIATE_ESCALATION
    assert override.escalation_level == EscalationLevel.EMERGENCY
    assert override.bypass_low_confidence is True
    assert override.requires_immediate_action

    alert = override.alerts[0]
    assert alert.severity == AlertSeverity.LIFE_THREATENING
    assert alert.urgency == Urgency.IMMEDIATE
    assert alert.escalation_required is True
    assert alert.time_to_action == "< 1 hour"
    assert alert.override_reason == "Critical value detected: 450 mg/dL (threshold: >400)"
    assert alert.recommended_actions[:2] == UNIVERSAL_ACTIONS
    assert "Evaluate for diabetic ketoacidosis" in alert.recommended_actions


def test_critical_creatinine(make_confidence):
    """Test creatinine 6,0 asks for urgent review"""
    override = evaluate_critical_values(
        _abnormal("CREATININA 6,0 mg/dL 0,7 - 1,3"), make_confidence()
    )

    assert override.override_recommendation == OverrideRecommendation.URGENT_REVIEW
    assert override.escalation_level == EscalationLevel.URGENT
    assert override.bypass_low_confidence is True

    alert = override.alerts[0]
    assert alert.severity == AlertSeverity.CRITICAL
    assert alert.escalation_required is False
    assert alert.time_to_action == "< 4 hours"
    assert "Consider the need for dialysis" in alert.recommended_actions


def test_priority_bypass_depends_on_confidence(make_confidence):
    """Test triglycerides 1200 bypass only applies to low confidence"""
    abnormal = _abnormal("TRIGLICÉRIDOS 1200 mg/dL < 150")

    low = evaluate_critical_values(abnormal, make_confidence(overall=50))
    high = evaluate_critical_values(abnormal, make_confidence(overall=90))

    assert low.override_recommendation == OverrideRecommendation.PRIORITY_PROCESSING
    assert low.alerts[0].severity == AlertSeverity.URGENT
    assert low.alerts[0].time_to_action == "< 24 hours"
    assert low.bypass_low_confidence is True
    assert high.bypass_low_confidence is False
    assert CriticalOverride(bypass_confidence=95).evaluate(
        abnormal, make_confidence(overall=90)
    ).bypass_low_confidence is True


def test_low_platelets_in_both_units(make_confidence):
    """Test platelet counts below 20.000 /mm³ in either unit"""
    for text in ("PLAQUETAS 15.000 /mm³", "PLAQUETAS 15 x10^3/uL"):
        override = evaluate_critical_values(_abnormal(text), make_confidence())

        alert = override.alerts[0]
        assert alert.value == 15000
        assert alert.unit == "/mm³"
        assert alert.severity == AlertSeverity.LIFE_THREATENING
        assert "Assess the need for platelet transfusion" in alert.recommended_actions


def test_normal_molar_glucose_has_no_alert(make_confidence):
    """Test 5,5 mmol/L fasting glucose stays routine"""
    override = evaluate_critical_values(
        _abnormal("GLICEMIA EN AYUNO (BASAL) 5,5 mmol/L 3,9 - 5,8"), make_confidence()
    )

    assert not override.has_critical_values
    assert override.escalation_level == EscalationLevel.ROUTINE
    assert override.bypass_low_confidence is False


def test_high_molar_glucose_reported_in_mg_dl(make_confidence):
    """Test 25 mmol/L glucose alerts as 450 mg/dL"""
    override = evaluate_critical_values(_abnormal("GLICEMIA 25 mmol/L"), make_confidence())

    alert = override.alerts[0]
    assert alert.value == 450.0
    assert alert.unit == "mg/dL"
    assert alert.severity == AlertSeverity.LIFE_THREATENING
    assert alert.override_reason == "Critical value detected: 450 mg/dL (threshold: >400)"


def test_low_hemoglobin_actions(make_confidence):
    """Test severe anemia adds transfusion actions"""
    override = evaluate_critical_values(_abnormal("HEMOGLOBINA 5,0 g/dL"), make_confidence())

    assert "Assess the need for transfusion" in override.alerts[0].recommended_actions


def test_value_at_threshold_has_no_alert(make_confidence):
    """Test glucose exactly 400 stays routine"""
    override = evaluate_critical_values(
        _abnormal("GLICEMIA 400 mg/dL 74 - 106"), make_confidence()
    )

    assert not override.has_critical_values
    assert override.override_recommendation == OverrideRecommendation.STANDARD_PROCESSING


def test_no_results(make_confidence):
    """Test empty abnormality report is routine"""
    override = evaluate_critical_values(AbnormalityReport(), make_confidence())

    assert override.alerts == ()
    assert override.escalation_level == EscalationLevel.ROUTINE
    assert override.bypass_low_confidence is False
    assert not override.requires_immediate_action
