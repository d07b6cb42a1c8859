# ============================================================================
# FILE: tests/unit/test_range_extractor.py
# ============================================================================
"""
Unit tests for reference range extraction
"""

import pytest

from lab_triage.core.context.enums import RangeType
from lab_triage.core.context.results import ReferenceRange
from lab_triage.extractors.range_extractor import (
    extract_ranges,
    parse_reference_range,
    summarize_ranges,
)
from lab_triage.utils.exceptions import RangeExtractionError, ReferenceRangeError


# ============================================================================
# SINGLE RANGE FORMS
# ============================================================================

def test_bounded_with_comma_decimals():
    """Test '0,55 - 4,78' parses as a bounded range"""
    reference = parse_reference_range("0,55 - 4,78")

    assert reference.range_type == RangeType.BOUNDED
    assert reference.min_value == 0.55
    assert reference.max_value == 4.78


def test_hasta_is_upper_limit():
    """Test Chilean 'Hasta 200' form"""
    reference = parse_reference_range("Hasta 200")

    assert reference.range_type == RangeType.UPPER_LIMIT
    assert reference.min_value is None
    assert reference.max_value == 200.0
    assert reference.pattern == "hasta"


def test_less_than_with_unit():
    """Test '< 200 mg/dL' keeps its unit"""
    reference = parse_reference_range("< 200 mg/dL")

    assert reference.range_type == RangeType.UPPER_LIMIT
    assert reference.max_value == 200.0
    assert reference.unit == "mg/dL"
    assert reference.confidence == 100


@pytest.mark.parametrize("text", ["> 40", "mayor a 40", "desde 40"])
def test_lower_limit_forms(text):
    """Test lower limit wordings"""
    reference = parse_reference_range(text)

    assert reference.range_type == RangeType.LOWER_LIMIT
    assert reference.min_value == 40.0
    assert reference.max_value is None


def test_exact_target():
    """Test '= 1,0' is an exact range"""
    reference = parse_reference_range("= 1,0")

    assert reference.range_type == RangeType.EXACT
    assert reference.min_value == reference.max_value == 1.0


def test_labelled_normal():
    """Test 'Normal: 74-106' wins over the plain bounded match"""
    reference = parse_reference_range("Normal: 74-106")

    assert reference.pattern == "labelled_normal"
    assert (reference.min_value, reference.max_value) == (74.0, 106.0)


def test_parse_reference_range_errors():
    """Test empty and unreadable range text raise"""
    with pytest.raises(RangeExtractionError):
        parse_reference_range("")
    with pytest.raises(RangeExtractionError):
        parse_reference_range("sin referencia")
    with pytest.raises(RangeExtractionError):
        parse_reference_range("106 - 74")


# ============================================================================
# DOCUMENT EXTRACTION
# ============================================================================

def test_gender_split_yields_two_ranges():
    """Test 'H: 0,7-1,3, M: 0,6-1,1' gives male and female ranges"""
    result = extract_ranges("H: 0,7-1,3, M: 0,6-1,1")

    assert result.total_found == 2
    by_gender = {r.gender: r for r in result.ranges}
    assert (by_gender["male"].min_value, by_gender["male"].max_value) == (0.7, 1.3)
    assert (by_gender["female"].min_value, by_gender["female"].max_value) == (0.6, 1.1)
    assert all(r.pattern == "gender_split" for r in result.ranges)


def test_flagged_range_is_corroborated():
    """Test glyph before the range boosts and corroborates it"""
    result = extract_ranges("GLICEMIA 269 mg/dL [ * ] 74 - 106")

    assert result.total_found == 1
    reference = result.ranges[0]
    assert reference.pattern == "flagged_bounded"
    assert reference.corroborated is True
    assert reference.confidence == 100


def test_inverted_bounds_discarded():
    """Test min >= max never becomes a range"""
    assert extract_ranges("106 - 74").total_found == 0
    assert extract_ranges("RUT: 12.345.678-5").total_found == 0


def test_count_unit_from_line():
    """Test dotted thousands use the unit printed on the line"""
    result = extract_ranges("PLAQUETAS 250.000 /mm³ 150.000 - 400.000")

    reference = result.ranges[0]
    assert reference.min_value == 150000.0
    assert reference.max_value == 400000.0


@pytest.mark.parametrize("text,age_group", [
    ("Adultos: 74 - 106", "adult"),
    ("Niños: 60 - 100", "child"),
    ("Adulto mayor 70 - 110", "elderly"),
])
def test_age_group(text, age_group):
    """Test age group qualifiers on the range line"""
    assert extract_ranges(text).ranges[0].age_group == age_group


def test_report_ranges(normal_report_text):
    """Test one range per result line of a typical report"""
    result = extract_ranges(normal_report_text)

    counts = summarize_ranges(list(result.ranges))
    assert counts["bounded"] == 3
    assert counts["upper_limit"] == 2
    assert counts["lower_limit"] == 1
    assert counts["exact"] == 0


def test_empty_text():
    """Test empty input yields no ranges"""
    assert extract_ranges("").total_found == 0
    assert extract_ranges(None).total_found == 0


def test_inverted_range_object_rejected():
    """Test ReferenceRange refuses min above max"""
    with pytest.raises(ReferenceRangeError):
        ReferenceRange(
            range_type=RangeType.BOUNDED,
            start=0,
            end=8,
            raw="106 - 74",
            pattern="bounded",
            confidence=90.0,
            min_value=106.0,
            max_value=74.0,
        )
