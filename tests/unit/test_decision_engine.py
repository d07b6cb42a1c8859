# ============================================================================
# FILE: tests/unit/test_decision_engine.py
# ============================================================================
"""
Unit tests for the auto-approval decision engine
"""

from lab_triage.core.context.enums import PriorityTier, RiskLevel, Verdict
from lab_triage.core.context.results import AbnormalityReport, IdentityExtraction
from lab_triage.core.decision import (
    DENY_CRITICAL_COUNT,
    DENY_IDENTITY,
    DENY_RISK_FACTORS,
    SAFEGUARD_APPROVED,
    SAFEGUARD_CRITICAL_VALUES,
    SAFEGUARD_MANY_CRITICAL,
    VERDICT_SAFEGUARDS,
    DecisionEngine,
    make_decision,
)
from lab_triage.extractors.marker_extractor import extract_markers
from lab_triage.extractors.range_extractor import extract_ranges
from lab_triage.validators.abnormality_detector import detect_abnormalities
from lab_triage.validators.critical_override import evaluate_critical_values


def _abnormal(text):
    return detect_abnormalities(text, extract_markers(text), extract_ranges(text))


NO_IDENTITY = IdentityExtraction()


# ============================================================================
# APPROVAL CRITERIA
# ============================================================================

def test_clean_report_auto_processed(make_confidence):
    """Test every criterion passing gives auto_process"""
    decision = make_decision(make_confidence(), AbnormalityReport(), NO_IDENTITY)

    assert decision.verdict == Verdict.AUTO_PROCESS
    assert decision.approved
    assert decision.risk_level == RiskLevel.LOW
    assert decision.audit_trail.deny_reasons == ()
    assert "overall confidence 90 >= 85" in decision.audit_trail.passed_criteria
    assert "no manual review triggers" in decision.audit_trail.passed_criteria
    assert decision.rationale == "All auto-approval criteria met with 90% confidence"
    for safeguard in SAFEGUARD_APPROVED:
        assert safeguard in decision.safeguards
    assert decision.safeguards[-1] == VERDICT_SAFEGUARDS[Verdict.AUTO_PROCESS]


def test_below_auto_threshold_goes_to_review(make_confidence):
    """Test overall 80 is reviewed, not approved"""
    decision = make_decision(make_confidence(overall=80), AbnormalityReport(), NO_IDENTITY)

    assert decision.verdict == Verdict.MANUAL_REVIEW
    assert not decision.approved
    assert decision.audit_trail.deny_reasons[0] == (
        "overall confidence below auto-approval threshold (80 < 85)"
    )


def test_low_confidence_rejected(make_confidence):
    """Test overall below the review band is rejected"""
    decision = make_decision(make_confidence(overall=60), AbnormalityReport(), NO_IDENTITY)

    assert decision.verdict == Verdict.REJECT
    assert decision.rationale.startswith("reject: ")


def test_weak_identity_denies_approval(make_confidence):
    """Test identity score under 80 blocks auto-approval"""
    decision = make_decision(make_confidence(identity=70.0), AbnormalityReport(), NO_IDENTITY)

    assert decision.verdict == Verdict.MANUAL_REVIEW
    assert f"{DENY_IDENTITY} (70 < 80)" in decision.audit_trail.deny_reasons


def test_accuracy_and_completeness_checks(make_confidence):
    """Test quality metrics below their floors deny approval"""
    decision = make_decision(
        make_confidence(completeness=60.0, accuracy=75.0), AbnormalityReport(), NO_IDENTITY
    )

    reasons = decision.audit_trail.deny_reasons
    assert "data completeness too low (60 < 70)" in reasons
    assert "accuracy too low (75 < 80)" in reasons


def test_too_many_risk_factors(make_confidence):
    """Test three risk factors deny approval with high risk"""
    factors = ("medium: a", "medium: b", "low: c")
    decision = make_decision(make_confidence(risk_factors=factors), AbnormalityReport(), NO_IDENTITY)

    assert f"{DENY_RISK_FACTORS} (3 > 2)" in decision.audit_trail.deny_reasons
    assert decision.risk_level == RiskLevel.HIGH
    assert decision.verdict == Verdict.MANUAL_REVIEW


def test_many_risk_factors_escalate(make_confidence):
    """Test more than three risk factors is critical risk"""
    factors = ("medium: a", "medium: b", "low: c", "low: d")
    decision = make_decision(make_confidence(risk_factors=factors), AbnormalityReport(), NO_IDENTITY)

    assert decision.risk_level == RiskLevel.CRITICAL
    assert decision.verdict == Verdict.ESCALATE


def test_trigger_phrase_denies(make_confidence):
    """Test a multi-identity risk factor forces human review"""
    factors = ("high: multiple identities detected - possible multi-patient confusion",)
    decision = make_decision(make_confidence(risk_factors=factors), AbnormalityReport(), NO_IDENTITY)

    assert "manual review trigger: multiple identities detected" in decision.audit_trail.deny_reasons
    assert "multiple identities detected requires human validation" in decision.safeguards
    assert decision.verdict == Verdict.MANUAL_REVIEW


def test_triggered_phrases_case_insensitive():
    """Test phrase matching ignores case"""
    phrases = DecisionEngine.triggered_phrases(("CRITICAL: Critical Abnormalities Detected",))

    assert phrases == ["critical abnormalities detected"]


def test_approval_is_monotonic_in_confidence(make_confidence):
    """Test raising overall confidence never withdraws approval"""
    engine = DecisionEngine()
    approvals = [
        engine.decide(make_confidence(overall=overall), AbnormalityReport(), NO_IDENTITY).approved
        for overall in range(0, 101, 5)
    ]

    first = approvals.index(True)
    assert all(approvals[first:])
    assert not any(approvals[:first])


def test_too_many_critical_abnormalities(make_confidence):
    """Test four critical values deny approval"""
    abnormal = _abnormal(
        "GLICEMIA 450 mg/dL\nPOTASIO 7,0 mEq/L\nCREATININA 6,0 mg/dL\nSODIO 170 mEq/L"
    )
    decision = make_decision(make_confidence(), abnormal, NO_IDENTITY)

    assert len(abnormal.critical_abnormalities) == 4
    assert f"{DENY_CRITICAL_COUNT} (4 > 3)" in decision.audit_trail.deny_reasons
    assert SAFEGUARD_MANY_CRITICAL in decision.safeguards


# ============================================================================
# CRITICAL PRECEDENCE
# ============================================================================

def test_critical_glucose_escalates_at_any_confidence(make_confidence):
    """Test glucose 450 escalates at both low and high confidence"""
    abnormal = _abnormal("GLICEMIA 450 mg/dL [ * ] 74 - 106")

    for overall in (10, 95):
        confidence = make_confidence(overall=overall)
        override = evaluate_critical_values(abnormal, confidence)
        decision = make_decision(confidence, abnormal, NO_IDENTITY, override)

        assert decision.verdict == Verdict.ESCALATE
        assert decision.risk_level == RiskLevel.CRITICAL
        assert SAFEGUARD_CRITICAL_VALUES in decision.safeguards


def test_override_recorded_in_audit_trail(make_confidence):
    """Test forced escalation of a rejected report is audited"""
    abnormal = _abnormal("GLICEMIA 450 mg/dL [ * ] 74 - 106")
    confidence = make_confidence(overall=10)
    decision = make_decision(
        confidence, abnormal, NO_IDENTITY, evaluate_critical_values(abnormal, confidence)
    )

    assert decision.audit_trail.overrides == (
        "critical override (immediate_escalation, emergency): reject -> escalate",
    )
    assert decision.rationale.startswith("escalate: critical override")


def test_priority_bypass_lifts_reject(make_confidence):
    """Test a priority-tier alert turns reject into manual review"""
    abnormal = _abnormal("TRIGLICÉRIDOS 1200 mg/dL < 150")
    confidence = make_confidence(overall=50)
    decision = make_decision(
        confidence, abnormal, NO_IDENTITY, evaluate_critical_values(abnormal, confidence)
    )

    assert decision.verdict == Verdict.MANUAL_REVIEW
    assert decision.audit_trail.overrides == (
        "critical override (priority_processing): reject -> manual_review",
    )


# ============================================================================
# SUMMARY
# ============================================================================

def test_summary_for_normal_report(make_confidence):
    """Test summary of an auto-processed report without findings"""
    engine = DecisionEngine()
    decision = engine.decide(make_confidence(), AbnormalityReport(), NO_IDENTITY)
    summary = engine.build_summary(decision, AbnormalityReport(), NO_IDENTITY)

    assert summary.priority_level == PriorityTier.NORMAL
    assert summary.patient_id is None
    assert summary.abnormal_count == 0
    assert "All values within normal ranges" in summary.recommendations
    assert summary.recommendations[-1] == "Processed automatically with 90% confidence"
    assert summary.next_actions == ("Continue with routine checkups",)
