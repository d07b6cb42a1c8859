# ============================================================================
# src/lab_triage/extractors/identity_extractor.py
# ============================================================================
"""
Patient Identity (RUT) Extraction

Pattern cascade from strictest to loosest:
1. Labelled ("RUT:", "RUN", "C.I.", "PACIENTE", ...) - highest confidence
2. Dotted 12.345.678-9
3. Undotted 12345678-9
4. Spaced 12 345 678-9
5. Loose separators 12.345.678 - 9
6. OCR-degraded "12345678 9" - lowest confidence

Every candidate is checked with the modulo-11 check digit. Invalid
candidates are kept with a confidence penalty so a mistyped or badly
scanned RUT still surfaces for review.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from ..core.context.enums import IdentitySource
from ..core.context.results import IdentityCandidate, IdentityExtraction
from ..utils.rut import anonymize_rut, format_rut, validate_rut
from ..utils.text_normalizer import PAGE_BREAK, fix_ocr_digits, fold_text, line_bounds
from .base import Extractor


_BODY = r'\d{1,2}\.?\d{3}\.?\d{3}'
_CHECK = r'[0-9Kk]'
_LEFT = r'(?<![\d.])'
_RIGHT = r'(?![0-9A-Za-z])'

# Label -> base confidence
_LABELS: Tuple[Tuple[str, str, float], ...] = (
    ("rut_label", r'\bR\.?\s?U\.?\s?[TN]\b\.?', 98),
    ("cedula_label", r'(?:\bC\.\s?I\.|\bC[EÉ]DULA(?:\s+DE\s+IDENTIDAD)?\b)', 95),
    ("patient_label", r'\bPACIENTE\b', 92),
    ("identification_label", r'\bIDENTIFICACI[OÓ]N\b', 90),
    ("document_label", r'\bDOC(?:UMENTO)?\b\.?', 88),
)

_LABEL_SEPARATOR = r'\s*(?:N[°º]\.?\s*)?[:#]?\s*'

_UNLABELLED: Tuple[Tuple[str, str, float], ...] = (
    ("dotted", _LEFT + r'(?P<rut>\d{1,2}\.\d{3}\.\d{3}-' + _CHECK + r')' + _RIGHT, 95),
    ("undotted", _LEFT + r'(?P<rut>\d{7,8}-' + _CHECK + r')' + _RIGHT, 90),
    ("spaced", _LEFT + r'(?P<rut>\d{1,2} \d{3} \d{3}\s*-\s*' + _CHECK + r')' + _RIGHT, 85),
    ("loose", _LEFT + r'(?P<rut>' + _BODY + r'[ \t]*-[ \t]*' + _CHECK + r')' + _RIGHT, 75),
    ("ocr_degraded", _LEFT + r'(?P<rut>\d{7,8}[ \t]+' + _CHECK + r')' + _RIGHT, 70),
)


def _compile_cascade() -> Tuple[Tuple[str, Pattern, float, bool], ...]:
    cascade = []
    for name, label, confidence in _LABELS:
        pattern = re.compile(
            r'(?P<label>' + label + r')' + _LABEL_SEPARATOR
            + r'(?P<rut>' + _BODY + r'\s*-\s*' + _CHECK + r')' + _RIGHT,
            re.IGNORECASE,
        )
        cascade.append((name, pattern, confidence, True))
    for name, regex, confidence in _UNLABELLED:
        cascade.append((name, re.compile(regex), confidence, False))
    return tuple(cascade)


RUT_PATTERNS = _compile_cascade()

_LABEL_NEARBY = re.compile(r'\b(?:R\.?U\.?[TN]\.?|C\.I\.|CEDULA|PACIENTE|IDENTIFICACION)\W*$')

PATIENT_CONTEXT_KEYWORDS = ('PACIENTE', 'PATIENT', 'NOMBRE')
UNRELATED_CONTEXT_KEYWORDS = ('TELEFONO', 'FONO', 'DIRECCION', 'FECHA', 'HORA', 'FOLIO')

VALID_CHECKSUM_BONUS = 5
INVALID_CHECKSUM_PENALTY = 30
PATIENT_CONTEXT_BONUS = 5
UNRELATED_CONTEXT_PENALTY = 10
LABEL_LOOKBEHIND = 30


class IdentityExtractor(Extractor):
    """
    Locate and checksum-validate the patient's RUT.

    Best match ordering: valid and labelled, then valid, then the
    highest-confidence invalid candidate. Earliest position breaks ties.
    """

    def get_name(self) -> str:
        return "IdentityExtractor"

    def empty_result(self) -> IdentityExtraction:
        return IdentityExtraction()

    def extract(self, text: str, first_page_only: bool = False, **inputs) -> IdentityExtraction:
        if first_page_only and PAGE_BREAK in text:
            text = text.split(PAGE_BREAK, 1)[0]

        scan_text = fix_ocr_digits(text)
        folded = fold_text(scan_text)

        found: Dict[str, IdentityCandidate] = {}
        for pattern_name, pattern, base_confidence, labelled_pattern in RUT_PATTERNS:
            for match in pattern.finditer(scan_text):
                candidate = self._build_candidate(
                    text, folded, match, pattern_name, base_confidence, labelled_pattern
                )
                if candidate is None:
                    continue
                existing = found.get(candidate.normalized)
                if existing is None or self._dedup_key(candidate) > self._dedup_key(existing):
                    found[candidate.normalized] = candidate

        candidates = tuple(sorted(found.values(), key=lambda c: c.start))
        if not candidates:
            self.logger.info("No identity number found")
            return IdentityExtraction()

        best = max(candidates, key=self._best_match_key)
        distinct_valid = tuple(c.normalized for c in candidates if c.is_valid)

        self.logger.info(
            f"Identity extraction: {len(candidates)} candidate(s), "
            f"best {anonymize_rut(best.formatted)} "
            f"(valid={best.is_valid}, confidence={best.confidence:.0f})"
        )
        if len(distinct_valid) > 1:
            self.logger.warning(
                f"{len(distinct_valid)} distinct valid identities in document, "
                f"using earliest-ranked {anonymize_rut(best.formatted)}"
            )

        return IdentityExtraction(
            candidates=candidates,
            best_match=best,
            distinct_valid=distinct_valid,
        )

    def _build_candidate(
        self,
        text: str,
        folded: str,
        match: re.Match,
        pattern_name: str,
        base_confidence: float,
        labelled_pattern: bool,
    ) -> Optional[IdentityCandidate]:
        start, end = match.span('rut')
        digits = re.sub(r'[^0-9Kk]', '', match.group('rut')).upper()
        body, check = digits[:-1], digits[-1]
        if not 7 <= len(body) <= 8:
            return None

        normalized = f"{body}-{check}"
        is_valid = validate_rut(normalized)

        lookbehind = folded[max(0, start - LABEL_LOOKBEHIND):start]
        labelled = labelled_pattern or bool(_LABEL_NEARBY.search(lookbehind))

        window = self.settings.IDENTITY_CONTEXT_CHARS
        context = text[max(0, start - window):min(len(text), end + window)]
        folded_context = folded[max(0, start - window):min(len(folded), end + window)]

        confidence = float(base_confidence)
        confidence += VALID_CHECKSUM_BONUS if is_valid else -INVALID_CHECKSUM_PENALTY
        if any(k in folded_context for k in PATIENT_CONTEXT_KEYWORDS):
            confidence += PATIENT_CONTEXT_BONUS
        if any(k in lookbehind for k in UNRELATED_CONTEXT_KEYWORDS):
            confidence -= UNRELATED_CONTEXT_PENALTY

        return IdentityCandidate(
            raw=text[start:end],
            normalized=normalized,
            formatted=format_rut(normalized),
            body=body,
            check_digit=check,
            start=start,
            end=end,
            context=context.strip(),
            source=self._classify_source(text, start, labelled_pattern),
            pattern=pattern_name,
            labelled=labelled,
            confidence=self.clamp(confidence),
            is_valid=is_valid,
        )

    def _classify_source(self, text: str, start: int, labelled_pattern: bool) -> IdentitySource:
        if labelled_pattern:
            return IdentitySource.FORM
        if start < self.settings.HEADER_REGION_CHARS:
            return IdentitySource.HEADER
        line_start, line_end = line_bounds(text, start)
        if '|' in text[line_start:line_end]:
            return IdentitySource.TABLE
        return IdentitySource.BODY

    @staticmethod
    def _dedup_key(candidate: IdentityCandidate) -> Tuple[float, int]:
        return candidate.confidence, -candidate.start

    @staticmethod
    def _best_match_key(candidate: IdentityCandidate) -> Tuple[bool, bool, float, int]:
        return candidate.is_valid, candidate.labelled, candidate.confidence, -candidate.start


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_extractor = IdentityExtractor()


def extract_identity(text: Optional[str], first_page_only: bool = False) -> IdentityExtraction:
    """Extract the patient RUT from report text."""
    return _default_extractor.run(text, first_page_only=first_page_only)


def best_identity(candidates: List[IdentityCandidate]) -> Optional[IdentityCandidate]:
    """Apply the best-match ordering to an arbitrary candidate list."""
    if not candidates:
        return None
    return max(candidates, key=IdentityExtractor._best_match_key)
