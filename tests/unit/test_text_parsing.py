# ============================================================================
# FILE: tests/unit/test_text_parsing.py
# ============================================================================
"""
Unit tests for text normalization and number parsing
"""

from lab_triage.utils.parsing import canonical_unit, parse_lab_number, units_equivalent
from lab_triage.utils.text_normalizer import (
    clean_lab_text,
    fix_ocr_digits,
    fold_text,
    has_abnormal_glyph,
    line_bounds,
    page_for_offset,
    page_offsets,
    split_pages,
)


def test_clean_lab_text():
    """Test line endings, nbsp and NUL cleanup"""
    assert clean_lab_text("a\r\nb\u00a0c\x00") == "a\nb c"
    assert clean_lab_text(None) == ""


def test_fold_text_preserves_length():
    """Test accent folding keeps offsets valid"""
    text = "Triglicéridos y Ácido Úrico"
    folded = fold_text(text)
    assert folded == "TRIGLICERIDOS Y ACIDO URICO"
    assert len(folded) == len(text)


def test_fix_ocr_digits():
    """Test digit-confusable letters only inside numbers"""
    assert fix_ocr_digits("1O5 mg/dL") == "105 mg/dL"
    assert fix_ocr_digits("GLUCOSA 1l2") == "GLUCOSA 112"
    assert fix_ocr_digits("COLESTEROL") == "COLESTEROL"


def test_abnormal_glyph_forms():
    """Test bracketed and trailing star glyphs"""
    assert has_abnormal_glyph("269 mg/dL [ * ]")
    assert has_abnormal_glyph("269 mg/dL [*]")
    assert has_abnormal_glyph("269 * mg/dL")
    assert not has_abnormal_glyph("269 mg/dL")


def test_line_bounds():
    """Test line start and end lookup"""
    assert line_bounds("ab\ncd", 3) == (3, 5)
    assert line_bounds("ab\ncd", 0) == (0, 2)


def test_split_pages_form_feed():
    """Test form feeds split pages"""
    assert split_pages("page one\fpage two") == ["page one", "page two"]
    assert split_pages("") == []


def test_split_pages_footer():
    """Test 'Página N de M' footers close pages"""
    text = "page one\nPágina 1 de 2\npage two\nPágina 2 de 2"
    pages = split_pages(text)
    assert len(pages) == 2
    assert "page two" in pages[1]


def test_page_offsets():
    """Test page start offsets in the form-feed join"""
    offsets = page_offsets(["ab", "cde"])
    assert offsets == [0, 3]
    assert page_for_offset(offsets, 1) == 0
    assert page_for_offset(offsets, 4) == 1


def test_parse_lab_number():
    """Test comma decimals and thousands grouping"""
    assert parse_lab_number("11,2") == 11.2
    assert parse_lab_number("0.55") == 0.55
    assert parse_lab_number("1.000.000") == 1000000.0
    assert parse_lab_number("250.000", "/mm³") == 250000.0
    assert parse_lab_number("250.000") == 250.0
    assert parse_lab_number("abc") is None
    assert parse_lab_number("") is None


def test_units():
    """Test unit canonicalization and equivalence"""
    assert canonical_unit("MG/DL") == "mg/dL"
    assert canonical_unit(None) is None
    assert units_equivalent("/mm3", "/MM³")
    assert units_equivalent("µUI/mL", "uUI/mL")
    assert not units_equivalent("mg/dL", "g/dL")
