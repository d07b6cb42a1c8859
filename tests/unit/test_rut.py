# ============================================================================
# FILE: tests/unit/test_rut.py
# ============================================================================
"""
Unit tests for RUT utilities
"""

import pytest

from lab_triage.utils.exceptions import IdentityExtractionError
from lab_triage.utils.rut import (
    anonymize_rut,
    compute_check_digit,
    format_rut,
    normalize_rut,
    split_rut,
    validate_rut,
)


@pytest.mark.parametrize("body,expected", [
    ("12345678", "5"),
    ("11111111", "1"),
    ("1000005", "K"),
    ("1000030", "0"),
    ("12.345.678", "5"),
])
def test_compute_check_digit(body, expected):
    """Test modulo-11 check character for known bodies"""
    assert compute_check_digit(body) == expected


def test_compute_check_digit_rejects_bad_body():
    """Test non-numeric or wrong-length bodies raise"""
    with pytest.raises(IdentityExtractionError):
        compute_check_digit("12a")
    with pytest.raises(IdentityExtractionError):
        compute_check_digit("123456")


def test_validate_rut():
    """Test validation across formats"""
    assert validate_rut("12.345.678-5") is True
    assert validate_rut("12345678-5") is True
    assert validate_rut("1.000.005-K") is True
    assert validate_rut("1000005-k") is True
    assert validate_rut("12.345.678-9") is False
    assert validate_rut("not a rut") is False
    assert validate_rut("") is False


CHECK_CHARACTERS = "0123456789K"
KNOWN_RUTS = [("12.345.678", "5"), ("1.000.005", "K"), ("11.111.111", "1")]


@pytest.mark.parametrize("body,wrong", [
    (body, wrong)
    for body, check in KNOWN_RUTS
    for wrong in CHECK_CHARACTERS if wrong != check
])
def test_every_wrong_check_character_rejected(body, wrong):
    """Test each of the ten wrong check characters fails validation"""
    assert validate_rut(f"{body}-{wrong}") is False
    assert validate_rut(f"{body}-{wrong.lower()}") is False


@pytest.mark.parametrize("body,check", KNOWN_RUTS)
def test_known_check_characters(body, check):
    """Test the correct check character validates for each known body"""
    assert validate_rut(f"{body}-{check}") is True


def test_split_and_normalize():
    """Test splitting and normalized form"""
    assert split_rut("12.345.678-5") == ("12345678", "5")
    assert split_rut("123") is None
    assert normalize_rut("12.345.678-5") == "12345678-5"
    assert normalize_rut("1.000.005-k") == "1000005-K"
    assert normalize_rut("garbage") is None


def test_format_rut():
    """Test display formatting with dot groups"""
    assert format_rut("12345678-5") == "12.345.678-5"
    assert format_rut("1000005-K") == "1.000.005-K"
    assert format_rut("nope") is None


def test_anonymize_rut():
    """Test masking for logs"""
    assert anonymize_rut("12.345.678-5") == "12.XXX.XXX-5"
    assert anonymize_rut("1000005-K") == "1.XXX.XXX-K"
    assert anonymize_rut(None) == "XX.XXX.XXX-X"
    assert anonymize_rut("bad") == "XX.XXX.XXX-X"
