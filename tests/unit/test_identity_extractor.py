# ============================================================================
# FILE: tests/unit/test_identity_extractor.py
# ============================================================================
"""
Unit tests for patient identity (RUT) extraction
"""

from lab_triage.core.context.enums import IdentitySource
from lab_triage.extractors.identity_extractor import IdentityExtractor, best_identity, extract_identity


def test_extractor_name():
    """Test extractor identifier"""
    assert IdentityExtractor().get_name() == "IdentityExtractor"


def test_labelled_dotted_rut():
    """Test labelled dotted RUT is the best match"""
    result = extract_identity("RUT: 12.345.678-5")

    assert result.found
    best = result.best_match
    assert best.formatted == "12.345.678-5"
    assert best.normalized == "12345678-5"
    assert best.is_valid is True
    assert best.labelled is True
    assert best.source == IdentitySource.FORM
    assert best.confidence >= 90


def test_wrong_check_digit_kept_with_penalty():
    """Test invalid checksum surfaces with reduced confidence"""
    result = extract_identity("RUT: 12.345.678-9")

    best = result.best_match
    assert best is not None
    assert best.is_valid is False
    assert best.confidence < 90
    assert result.distinct_valid == ()


def test_k_check_digit():
    """Test K check character (upper and lower case)"""
    assert extract_identity("RUN: 1.000.005-K").best_match.is_valid
    lower = extract_identity("Cédula de identidad 1000005-k").best_match
    assert lower.is_valid
    assert lower.check_digit == "K"


def test_ocr_degraded_rut():
    """Test 'digits space digit' form is found at low confidence"""
    result = extract_identity("informe 12345678 5 fin")

    best = result.best_match
    assert best.pattern == "ocr_degraded"
    assert best.normalized == "12345678-5"
    assert best.is_valid
    assert best.confidence < 90


def test_ocr_letter_in_body():
    """Test O-for-0 confusion inside the RUT body is repaired"""
    result = extract_identity("RUT: 12.3O5.678-7")

    assert result.best_match is not None
    assert result.best_match.normalized == "12305678-7"
    assert result.best_match.is_valid


def test_valid_beats_invalid():
    """Test valid candidate outranks a higher-confidence invalid one"""
    result = extract_identity("RUT: 12.345.678-9\nmuestra 11.111.111-1")

    assert result.best_match.normalized == "11111111-1"


def test_multiple_identities(multi_identity_text):
    """Test two distinct valid RUTs are flagged, earliest wins the tie"""
    result = extract_identity(multi_identity_text)

    assert result.multiple_identities
    assert set(result.distinct_valid) == {"12345678-5", "11111111-1"}
    assert result.best_match.normalized == "12345678-5"


def test_duplicate_occurrences_collapse():
    """Test the same RUT printed twice is one candidate"""
    result = extract_identity("RUT: 12.345.678-5\nPaciente 12345678-5")

    assert len(result.candidates) == 1
    assert not result.multiple_identities


def test_first_page_only():
    """Test restricting the search to page one"""
    text = "sin identificacion\fRUT: 12.345.678-5"

    assert extract_identity(text).found
    assert not extract_identity(text, first_page_only=True).found


def test_no_identity():
    """Test text without RUT and empty text"""
    assert not extract_identity("GLICEMIA 90 mg/dL").found
    assert extract_identity("").candidates == ()
    assert extract_identity(None).best_match is None


def test_best_identity_helper():
    """Test best-match ordering on an arbitrary list"""
    result = extract_identity("RUT: 12.345.678-9\nmuestra 11.111.111-1")

    assert best_identity(list(result.candidates)).normalized == "11111111-1"
    assert best_identity([]) is None
