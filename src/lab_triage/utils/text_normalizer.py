# ============================================================================
# src/lab_triage/utils/text_normalizer.py
# ============================================================================
"""
Text Normalization for Chilean Lab Report Text

Handles:
- Line ending and whitespace cleanup from text extraction
- Accent folding (length preserving, so match offsets stay valid)
- OCR digit confusions inside numbers (O -> 0, I/l -> 1)
- Page splitting on form feeds and "Página N de M" footers
"""

import re
import unicodedata
from typing import List, Optional, Sequence, Tuple


# Abnormal-result glyph printed by Chilean labs next to flagged values:
# "[*]", "[ * ]" or a bare star right after the number
ABNORMAL_GLYPH_PATTERN = re.compile(r'\[\s*\*\s*\]|(?<=\d)[ \t]?\*(?![\w*\]])')

PAGE_BREAK = '\f'

# "Página 1 de 3", "Pag. 2/3", "Page 1 of 2"
PAGE_FOOTER_PATTERN = re.compile(
    r'^[ \t]*(?:P[ÁA]GINA|PAG\.?|PAGE)\s*(\d+)\s*(?:DE|OF|/)\s*(\d+)[ \t]*$',
    re.IGNORECASE | re.MULTILINE,
)

# Digit-confusable letters, only replaced when flanked by digits
OCR_DIGIT_FIXES = {
    'O': '0',
    'o': '0',
    'I': '1',
    'l': '1',
}
_OCR_DIGIT_PATTERN = re.compile(r'(?<=\d)[OoIl](?=[\d.\-])')


def clean_lab_text(text: Optional[str]) -> str:
    """
    Normalize raw extracted text.

    - CRLF / CR line endings become LF
    - Non-breaking and zero-width spaces become plain spaces
    - NUL characters are dropped

    Form feeds are kept as page boundaries.
    """
    if not text:
        return ""
    cleaned = text.replace('\r\n', '\n').replace('\r', '\n')
    cleaned = cleaned.replace('\u00a0', ' ').replace('\u200b', ' ')
    cleaned = cleaned.replace('\x00', '')
    return cleaned


def fold_char(char: str) -> str:
    """Upper-case, accent-free form of a single character (always 1 char)."""
    decomposed = unicodedata.normalize('NFKD', char)
    base = ''.join(c for c in decomposed if not unicodedata.combining(c))
    candidate = base.upper() if base else char
    if len(candidate) != 1:
        candidate = char.upper() if len(char.upper()) == 1 else char
    return candidate


def fold_text(text: str) -> str:
    """
    Upper-case and strip accents while keeping len(result) == len(text).

    Positions found in the folded text can be used directly on the original.
    """
    return ''.join(fold_char(c) for c in text)


def strip_accents(text: str) -> str:
    """Remove diacritics (may change length for decomposed input)."""
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


def fix_ocr_digits(text: str) -> str:
    """Replace digit-confusable letters sitting inside numbers."""
    return _OCR_DIGIT_PATTERN.sub(lambda m: OCR_DIGIT_FIXES[m.group(0)], text)


def has_abnormal_glyph(text: str) -> bool:
    """True if the inline abnormal marker appears in text."""
    return bool(ABNORMAL_GLYPH_PATTERN.search(text))


def line_bounds(text: str, position: int) -> Tuple[int, int]:
    """Start and end offsets of the line containing position."""
    start = text.rfind('\n', 0, position) + 1
    end = text.find('\n', position)
    if end == -1:
        end = len(text)
    return start, end


def split_pages(text: str) -> List[str]:
    """
    Split report text into pages.

    Form feeds win when present; otherwise "Página N de M" footers
    close a page. Text without either is a single page.
    """
    if not text:
        return []

    if PAGE_BREAK in text:
        return text.split(PAGE_BREAK)

    pages = []
    last = 0
    for match in PAGE_FOOTER_PATTERN.finditer(text):
        pages.append(text[last:match.end()])
        last = match.end()
    tail = text[last:]
    if tail.strip() or not pages:
        pages.append(tail)
    return pages


def join_pages(pages: Sequence[str]) -> str:
    """Join pages with form feeds."""
    return PAGE_BREAK.join(pages)


def page_offsets(pages: Sequence[str]) -> List[int]:
    """Start offset of every page inside join_pages(pages)."""
    offsets = []
    position = 0
    for page in pages:
        offsets.append(position)
        position += len(page) + len(PAGE_BREAK)
    return offsets


def page_for_offset(offsets: Sequence[int], position: int) -> int:
    """Zero-based page index for a character offset."""
    page = 0
    for index, start in enumerate(offsets):
        if position >= start:
            page = index
        else:
            break
    return page
