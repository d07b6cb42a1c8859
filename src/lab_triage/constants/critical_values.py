# ============================================================================
# src/lab_triage/constants/critical_values.py
# ============================================================================
"""
Critical Value Thresholds
- Absolute, population-independent danger limits
- Independent of the patient's own reference range
- Urgency tier drives alert severity and time to action
"""

from types import MappingProxyType
from typing import Mapping, Optional

from ..core.context.catalog_entries import CriticalThreshold
from ..core.context.enums import MarkerCategory, Urgency
from ..utils.parsing import units_equivalent


CRITICAL_VALUE_THRESHOLDS: Mapping[str, CriticalThreshold] = MappingProxyType({
    t.marker_code: t for t in (
        # Glucose
        CriticalThreshold(
            marker_code="glucose_fasting",
            marker_name="GLICEMIA EN AYUNO",
            category=MarkerCategory.GLUCOSE,
            critical_high=400, critical_low=50,
            unit="mg/dL",
            urgency=Urgency.IMMEDIATE,
            description="Critical glucose, diabetic or hypoglycemic coma risk",
            clinical_significance="Risk of diabetic coma, seizures or death",
        ),
        CriticalThreshold(
            marker_code="hba1c",
            marker_name="HEMOGLOBINA GLICADA A1C",
            category=MarkerCategory.GLUCOSE,
            critical_high=15,
            unit="%",
            urgency=Urgency.URGENT,
            description="Extremely poor glycemic control",
            clinical_significance="Very high risk of diabetic complications",
        ),
        # Cardiac
        CriticalThreshold(
            marker_code="troponin",
            marker_name="TROPONINA",
            category=MarkerCategory.CARDIAC,
            critical_high=0.4,
            unit="ng/mL",
            urgency=Urgency.IMMEDIATE,
            description="Elevated troponin, possible myocardial infarction",
            clinical_significance="Acute myocardial infarction in progress",
        ),
        # Kidney
        CriticalThreshold(
            marker_code="creatinine",
            marker_name="CREATININA",
            category=MarkerCategory.KIDNEY,
            critical_high=5.0,
            unit="mg/dL",
            urgency=Urgency.URGENT,
            description="Severe renal failure",
            clinical_significance="Acute kidney failure, possible dialysis",
        ),
        CriticalThreshold(
            marker_code="urea",
            marker_name="UREA",
            category=MarkerCategory.KIDNEY,
            critical_high=150,
            unit="mg/dL",
            urgency=Urgency.URGENT,
            description="Severe uremia",
            clinical_significance="Uremic intoxication, neurological impairment",
        ),
        # Liver
        CriticalThreshold(
            marker_code="ast",
            marker_name="GOT (A.S.T)",
            category=MarkerCategory.LIVER,
            critical_high=1000,
            unit="U/L",
            urgency=Urgency.URGENT,
            description="Severe hepatic necrosis",
            clinical_significance="Acute liver failure, risk of death",
        ),
        CriticalThreshold(
            marker_code="alt",
            marker_name="GPT (A.L.T)",
            category=MarkerCategory.LIVER,
            critical_high=1000,
            unit="U/L",
            urgency=Urgency.URGENT,
            description="Severe hepatic necrosis",
            clinical_significance="Acute liver failure, risk of death",
        ),
        CriticalThreshold(
            marker_code="bilirubin_total",
            marker_name="BILIRRUBINA TOTAL",
            category=MarkerCategory.LIVER,
            critical_high=20,
            unit="mg/dL",
            urgency=Urgency.URGENT,
            description="Severe jaundice",
            clinical_significance="Liver failure, possible encephalopathy",
        ),
        # Hematology
        CriticalThreshold(
            marker_code="hemoglobin",
            marker_name="HEMOGLOBINA",
            category=MarkerCategory.BLOOD,
            critical_high=20, critical_low=6,
            unit="g/dL",
            urgency=Urgency.IMMEDIATE,
            description="Critical hemoglobin",
            clinical_significance="Severe anemia or polycythemia, cardiovascular risk",
        ),
        CriticalThreshold(
            marker_code="platelets",
            marker_name="PLAQUETAS",
            category=MarkerCategory.BLOOD,
            critical_high=1000000, critical_low=20000,
            unit="/mm³",
            urgency=Urgency.IMMEDIATE,
            description="Critical platelet count",
            clinical_significance="Risk of hemorrhage or thrombosis",
        ),
        CriticalThreshold(
            marker_code="wbc",
            marker_name="GLÓBULOS BLANCOS",
            category=MarkerCategory.BLOOD,
            critical_high=50000, critical_low=1000,
            unit="/mm³",
            urgency=Urgency.URGENT,
            description="Critical leukocyte count",
            clinical_significance="Severe infection or critical immunosuppression",
        ),
        # Electrolytes
        CriticalThreshold(
            marker_code="potassium",
            marker_name="POTASIO",
            category=MarkerCategory.ELECTROLYTES,
            critical_high=6.5, critical_low=2.5,
            unit="mEq/L",
            urgency=Urgency.IMMEDIATE,
            description="Critical potassium",
            clinical_significance="Potentially fatal cardiac arrhythmias",
        ),
        CriticalThreshold(
            marker_code="sodium",
            marker_name="SODIO",
            category=MarkerCategory.ELECTROLYTES,
            critical_high=160, critical_low=120,
            unit="mEq/L",
            urgency=Urgency.URGENT,
            description="Critical sodium",
            clinical_significance="Neurological disturbances, seizures",
        ),
        # Thyroid
        CriticalThreshold(
            marker_code="tsh",
            marker_name="H. TIROESTIMULANTE (TSH)",
            category=MarkerCategory.THYROID,
            critical_high=50, critical_low=0.01,
            unit="mUI/L",
            urgency=Urgency.URGENT,
            description="Critical TSH",
            clinical_significance="Myxedema coma or thyroid storm",
        ),
        # Lipids
        CriticalThreshold(
            marker_code="triglycerides",
            marker_name="TRIGLICÉRIDOS",
            category=MarkerCategory.LIPIDS,
            critical_high=1000,
            unit="mg/dL",
            urgency=Urgency.PRIORITY,
            description="Severe hypertriglyceridemia",
            clinical_significance="Risk of acute pancreatitis",
        ),
    )
})

# Per-marker multipliers bringing a reported unit onto the threshold unit.
# Spellings are matched with units_equivalent (³/3, µ/u, case).
THRESHOLD_UNIT_FACTORS: Mapping[str, Mapping[str, float]] = MappingProxyType({
    "glucose_fasting": {"mmol/L": 18.0},
    "creatinine": {"umol/L": 1 / 88.4},
    "urea": {"mmol/L": 6.006},
    "bilirubin_total": {"umol/L": 1 / 17.1},
    "triglycerides": {"mmol/L": 88.57},
    "ast": {"UI/L": 1.0},
    "alt": {"UI/L": 1.0},
    "potassium": {"mmol/L": 1.0},
    "sodium": {"mmol/L": 1.0},
    "tsh": {"uUI/mL": 1.0},
    "platelets": {"/uL": 1.0, "x10^3/uL": 1000.0, "x10³/uL": 1000.0},
    "wbc": {"/uL": 1.0, "x10^3/uL": 1000.0, "x10³/uL": 1000.0},
})

TIME_TO_ACTION: Mapping[Urgency, str] = MappingProxyType({
    Urgency.IMMEDIATE: "< 1 hour",
    Urgency.URGENT: "< 4 hours",
    Urgency.PRIORITY: "< 24 hours",
})


def get_critical_threshold(marker_code: str) -> Optional[CriticalThreshold]:
    """Threshold entry for a marker code, if one exists."""
    return CRITICAL_VALUE_THRESHOLDS.get(marker_code)


def to_threshold_unit(value: float, unit: Optional[str], threshold: CriticalThreshold) -> Optional[float]:
    """
    Express an extracted value in the threshold's unit.

    A value with no unit is taken as already being in the threshold unit.
    Returns None when the unit has no known conversion; such a value
    cannot be compared against the limit.

    Examples:
        5.5 mmol/L glucose -> 99.0 (mg/dL)
        15 x10^3/uL platelets -> 15000.0 (/mm³)
    """
    if not unit or units_equivalent(unit, threshold.unit):
        return value
    for known_unit, factor in THRESHOLD_UNIT_FACTORS.get(threshold.marker_code, {}).items():
        if units_equivalent(unit, known_unit):
            return value * factor
    return None


def value_in_threshold_unit(marker_code: str, value: Optional[float], unit: Optional[str] = None) -> Optional[float]:
    """Value on the scale of the marker's critical limits, None if not comparable."""
    if value is None:
        return None
    threshold = get_critical_threshold(marker_code)
    if threshold is None:
        return None
    return to_threshold_unit(value, unit, threshold)


def crosses_critical_threshold(marker_code: str, value: Optional[float], unit: Optional[str] = None) -> bool:
    """True when value crosses the marker's absolute danger limit."""
    comparable = value_in_threshold_unit(marker_code, value, unit)
    if comparable is None:
        return False
    return get_critical_threshold(marker_code).is_crossed(comparable)
