# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import pytest

from lab_triage.core.context.enums import ConfidenceRecommendation
from lab_triage.core.context.results import (
    ComponentConfidence,
    ConfidenceReport,
    DecisionThresholds,
    QualityMetrics,
)


@pytest.fixture
def normal_report_text():
    """Chilean lab report with every value inside its reference range"""
    return (
        "LABORATORIO CLINICO SAN JOSE\n"
        "INFORME DE RESULTADOS\n"
        "Paciente: MARIA GONZALEZ\n"
        "RUT: 12.345.678-5\n"
        "EXAMEN                      RESULTADO     VALOR DE REFERENCIA\n"
        "GLICEMIA EN AYUNO (BASAL)   92 mg/dL      74 - 106\n"
        "COLESTEROL TOTAL            180 mg/dL     < 200\n"
        "COLESTEROL HDL              55 mg/dL      > 40\n"
        "TRIGLICÉRIDOS               120 mg/dL     < 150\n"
        "H. TIROESTIMULANTE (TSH)    2,1 uUI/mL    0,55 - 4,78\n"
        "CREATININA                  0,9 mg/dL     0,7 - 1,3\n"
    )


@pytest.fixture
def abnormal_report_text():
    """Report with severe (but not critical) flagged results"""
    return (
        "Paciente: JUAN PEREZ\n"
        "RUT: 12.345.678-5\n"
        "GLICEMIA EN AYUNO (BASAL)   269 mg/dL [ * ]   74 - 106\n"
        "HEMOGLOBINA GLICADA A1C     11,2 %    [ * ]   4 - 6\n"
        "COLESTEROL TOTAL            180 mg/dL         < 200\n"
    )


@pytest.fixture
def critical_report_text():
    """Report with a life-threatening fasting glucose"""
    return (
        "Paciente: JUAN PEREZ\n"
        "RUT: 12.345.678-5\n"
        "GLICEMIA EN AYUNO (BASAL)   450 mg/dL [ * ]   74 - 106\n"
        "COLESTEROL TOTAL            180 mg/dL         < 200\n"
        "CREATININA                  0,9 mg/dL         0,7 - 1,3\n"
    )


@pytest.fixture
def multi_identity_text():
    """Two different valid RUTs in one document"""
    return (
        "RUT: 12.345.678-5\n"
        "Derivado por RUT: 11.111.111-1\n"
        "GLICEMIA EN AYUNO (BASAL)   92 mg/dL      74 - 106\n"
    )


@pytest.fixture
def make_confidence():
    """Factory for ConfidenceReport objects with chosen scores"""

    def _make(
        overall=90,
        identity=95.0,
        markers=90.0,
        ranges=90.0,
        abnormal=90.0,
        completeness=100.0,
        accuracy=90.0,
        consistency=95.0,
        risk_factors=(),
    ):
        if overall >= 85:
            recommendation = ConfidenceRecommendation.AUTO_APPROVE
        elif overall >= 70:
            recommendation = ConfidenceRecommendation.MANUAL_REVIEW
        else:
            recommendation = ConfidenceRecommendation.REJECT
        return ConfidenceReport(
            identity=ComponentConfidence(identity, 0.20),
            markers=ComponentConfidence(markers, 0.30),
            ranges=ComponentConfidence(ranges, 0.25),
            abnormal_values=ComponentConfidence(abnormal, 0.25),
            overall_score=overall,
            quality=QualityMetrics(completeness, accuracy, consistency),
            risk_factors=tuple(risk_factors),
            thresholds=DecisionThresholds(85.0, 70.0, 50.0),
            recommendation=recommendation,
        )

    return _make
