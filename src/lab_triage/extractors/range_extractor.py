# ============================================================================
# src/lab_triage/extractors/range_extractor.py
# ============================================================================
"""
Reference Range Extraction

Structural forms, each with its own baseline confidence:
- Bounded "74 - 106" (and "[ * ] 74 - 106", "Normal: 74-106")
- Upper limit "< 200", "menor a 200", Chilean "Hasta 200"
- Lower limit "> 40", "mayor a 40", "desde 40"
- Exact / target "= 1.0"
- Gender split "H: 0.7-1.3, M: 0.6-1.1"

Comma and period decimals are both accepted. A range sharing its line
with the inline abnormal glyph is boosted and marked corroborated.
"""

import re
from typing import Dict, List, Optional, Tuple

from ..constants.marker_catalog import MARKER_LOOKUP
from ..core.context.enums import RangeType
from ..core.context.results import RangeExtraction, ReferenceRange
from ..utils.exceptions import RangeExtractionError
from ..utils.parsing import NUMBER_PATTERN, UNIT_PATTERN, canonical_unit, parse_lab_number
from ..utils.text_normalizer import ABNORMAL_GLYPH_PATTERN, fix_ocr_digits, fold_text, line_bounds
from .base import Extractor


_NUM = r'(?:' + NUMBER_PATTERN + r')'
_L = r'(?<![\d.,\-/])'
_R = r'(?![\d\-/]|[.,]\d)'
_DASH = r'\s*(?:-|–|\bA\b)\s*'


def _bound(name: str) -> str:
    return r'(?P<' + name + r'>' + _NUM + r')'


# (name, regex, base confidence, range type)
RANGE_PATTERNS: Tuple[Tuple[str, re.Pattern, float, Optional[RangeType]], ...] = tuple(
    (name, re.compile(regex), confidence, range_type)
    for name, regex, confidence, range_type in (
        ("flagged_bounded",
         r'\[\s*\*\s*\]\s*' + _L + _bound('min') + _DASH + _bound('max') + _R,
         98, RangeType.BOUNDED),
        ("labelled_normal",
         r'(?:\bNORMAL(?:ES)?|\bREF(?:ERENCIA)?\.?|\bV\.\s?R\.|\bRANGO)\s*:?\s*'
         + _L + _bound('min') + _DASH + _bound('max') + _R,
         96, RangeType.BOUNDED),
        ("hasta",
         r'\bHASTA\s*' + _bound('max') + _R,
         95, RangeType.UPPER_LIMIT),
        ("gender_split",
         r'\bH(?:OMBRES?)?\s*:\s*' + _bound('min') + _DASH + _bound('max')
         + r'\s*[,;/]?\s*\bM(?:UJERES?)?\s*:\s*' + _bound('min2') + _DASH + _bound('max2') + _R,
         94, None),
        ("upper_limit",
         r'(?:<\s*=?|≤|\bMENOR\s+(?:A|QUE|DE)\b)\s*' + _bound('max') + _R,
         92, RangeType.UPPER_LIMIT),
        ("lower_limit",
         r'(?:>\s*=?|≥|\bMAYOR\s+(?:A|QUE|DE)\b|\bDESDE\b)\s*' + _bound('min') + _R,
         90, RangeType.LOWER_LIMIT),
        ("exact",
         r'(?<![<>!=])=\s*' + _bound('value') + _R,
         88, RangeType.EXACT),
        ("bounded",
         _L + _bound('min') + _DASH + _bound('max') + _R,
         85, RangeType.BOUNDED),
    )
)

_TRAILING_UNIT = re.compile(r'[ \t]*(?P<unit>' + UNIT_PATTERN + r')', re.IGNORECASE)
_ANY_UNIT = re.compile(r'(?<![A-Za-z])(?P<unit>' + UNIT_PATTERN + r')(?![A-Za-z])', re.IGNORECASE)

_RANGE_KEYWORDS = re.compile(r'\b(?:REFERENCIA|NORMAL|VALOR|V\.R\.|RANGO)')
_MALE = re.compile(r'(?:HOMBRE|VARON|MASCULINO|\bH\s*:)')
_FEMALE = re.compile(r'(?:MUJER|FEMENINO|\bM\s*:)')
_ELDERLY = re.compile(r'(?:ANCIANO|ADULTO\s+MAYOR|MAYORES\s+DE\s+65)')
_ADULT = re.compile(r'\bADULTOS?\b')
_CHILD = re.compile(r'(?:\bNINOS?\b|PEDIATRIC|INFANTIL)')
_TABLE_PADDING = re.compile(r'\S {3,}\S')


def _marker_name_pattern() -> re.Pattern:
    names = sorted(MARKER_LOOKUP.keys(), key=len, reverse=True)
    alternation = '|'.join(r'\s+'.join(re.escape(w) for w in name.split()) for name in names)
    return re.compile(r'(?<![A-Z0-9])(?:' + alternation + r')(?![A-Z0-9])')


_MARKER_NAME_PATTERN = _marker_name_pattern()

TABLE_BONUS = 10
MARKER_NAME_BONUS = 15
UNIT_BONUS = 12
KEYWORD_BONUS = 10
GLYPH_BONUS = 20
LARGE_BOUND_PENALTY = 20
LARGE_BOUND = 10000
GENDER_LOOKBEHIND = 15


class RangeExtractor(Extractor):
    """Parse reference-range text into typed ranges."""

    def get_name(self) -> str:
        return "RangeExtractor"

    def empty_result(self) -> RangeExtraction:
        return RangeExtraction()

    def extract(self, text: str, **inputs) -> RangeExtraction:
        scan_text = fix_ocr_digits(text)
        folded = fold_text(scan_text)

        found: List[ReferenceRange] = []
        for pattern_name, pattern, base_confidence, range_type in RANGE_PATTERNS:
            for match in pattern.finditer(folded):
                found.extend(
                    self._build_ranges(text, folded, match, pattern_name, base_confidence, range_type)
                )

        minimum = self.settings.MIN_RANGE_CONFIDENCE
        kept = [r for r in found if r.confidence >= minimum]
        ranges = self._deduplicate(kept)

        self.logger.info(
            f"Range extraction: {len(ranges)} range(s) "
            f"({len(found) - len(kept)} below confidence {minimum:.0f})"
        )
        return RangeExtraction(ranges=tuple(ranges))

    def _build_ranges(
        self,
        text: str,
        folded: str,
        match: re.Match,
        pattern_name: str,
        base_confidence: float,
        range_type: Optional[RangeType],
    ) -> List[ReferenceRange]:
        start, end = match.span()
        line_start, line_end = line_bounds(folded, start)
        line = folded[line_start:line_end]

        trailing = _TRAILING_UNIT.match(folded, end)
        unit = canonical_unit(text[trailing.start('unit'):trailing.end('unit')]) if trailing else None
        parse_unit = unit or self._line_unit(text, line_start, line_end)

        shared = self._score_context(line, start - line_start, unit is not None)
        confidence = base_confidence + shared
        corroborated = bool(ABNORMAL_GLYPH_PATTERN.search(line))
        age_group = self._age_group(line)
        raw = text[start:end].strip()

        if range_type is None:
            # gender split yields one range per sex
            results = []
            for suffix, gender in (('', 'male'), ('2', 'female')):
                built = self._bounded(
                    match.group('min' + suffix), match.group('max' + suffix), parse_unit,
                    start, end, raw, pattern_name, confidence, unit, gender, age_group, corroborated,
                )
                if built is not None:
                    results.append(built)
            return results

        gender = self._gender(folded[max(line_start, start - GENDER_LOOKBEHIND):start])

        if range_type == RangeType.BOUNDED:
            built = self._bounded(
                match.group('min'), match.group('max'), parse_unit,
                start, end, raw, pattern_name, confidence, unit, gender, age_group, corroborated,
            )
            return [built] if built is not None else []

        if range_type == RangeType.UPPER_LIMIT:
            min_value, max_value = None, parse_lab_number(match.group('max'), parse_unit)
        elif range_type == RangeType.LOWER_LIMIT:
            min_value, max_value = parse_lab_number(match.group('min'), parse_unit), None
        else:
            target = parse_lab_number(match.group('value'), parse_unit)
            min_value, max_value = target, target

        if min_value is None and max_value is None:
            return []
        bound = max_value if max_value is not None else min_value
        if bound > LARGE_BOUND:
            confidence -= LARGE_BOUND_PENALTY

        return [ReferenceRange(
            range_type=range_type,
            start=start,
            end=end,
            raw=raw,
            pattern=pattern_name,
            confidence=self.clamp(confidence),
            min_value=min_value,
            max_value=max_value,
            unit=unit,
            gender=gender,
            age_group=age_group,
            corroborated=corroborated,
        )]

    def _bounded(
        self,
        min_text: str,
        max_text: str,
        parse_unit: Optional[str],
        start: int,
        end: int,
        raw: str,
        pattern_name: str,
        confidence: float,
        unit: Optional[str],
        gender: Optional[str],
        age_group: Optional[str],
        corroborated: bool,
    ) -> Optional[ReferenceRange]:
        min_value = parse_lab_number(min_text, parse_unit)
        max_value = parse_lab_number(max_text, parse_unit)
        if min_value is None or max_value is None or min_value >= max_value:
            return None
        if max_value > LARGE_BOUND:
            confidence -= LARGE_BOUND_PENALTY
        return ReferenceRange(
            range_type=RangeType.BOUNDED,
            start=start,
            end=end,
            raw=raw,
            pattern=pattern_name,
            confidence=self.clamp(confidence),
            min_value=min_value,
            max_value=max_value,
            unit=unit,
            gender=gender,
            age_group=age_group,
            corroborated=corroborated,
        )

    @staticmethod
    def _score_context(line: str, offset_in_line: int, has_unit: bool) -> float:
        score = 0.0
        if '|' in line or _TABLE_PADDING.search(line):
            score += TABLE_BONUS
        if _MARKER_NAME_PATTERN.search(line, 0, offset_in_line):
            score += MARKER_NAME_BONUS
        if has_unit:
            score += UNIT_BONUS
        if _RANGE_KEYWORDS.search(line):
            score += KEYWORD_BONUS
        if ABNORMAL_GLYPH_PATTERN.search(line):
            score += GLYPH_BONUS
        return score

    @staticmethod
    def _line_unit(text: str, line_start: int, line_end: int) -> Optional[str]:
        match = _ANY_UNIT.search(text, line_start, line_end)
        return canonical_unit(match.group('unit')) if match else None

    @staticmethod
    def _gender(context: str) -> Optional[str]:
        if _FEMALE.search(context):
            return "female"
        if _MALE.search(context):
            return "male"
        return None

    @staticmethod
    def _age_group(line: str) -> Optional[str]:
        if _ELDERLY.search(line):
            return "elderly"
        if _CHILD.search(line):
            return "child"
        if _ADULT.search(line):
            return "adult"
        return None

    def _deduplicate(self, ranges: List[ReferenceRange]) -> List[ReferenceRange]:
        """Identical bounds within RANGE_DEDUP_DISTANCE collapse to the best one."""
        distance = self.settings.RANGE_DEDUP_DISTANCE
        kept: List[ReferenceRange] = []
        for candidate in sorted(ranges, key=lambda r: (r.start, -r.confidence)):
            duplicate_index = None
            for index, existing in enumerate(kept):
                if (existing.min_value == candidate.min_value
                        and existing.max_value == candidate.max_value
                        and existing.range_type == candidate.range_type
                        and existing.gender == candidate.gender
                        and abs(existing.start - candidate.start) <= distance):
                    duplicate_index = index
                    break
            if duplicate_index is None:
                kept.append(candidate)
            elif candidate.confidence > kept[duplicate_index].confidence:
                kept[duplicate_index] = candidate
        return sorted(kept, key=lambda r: r.start)


def summarize_ranges(ranges: List[ReferenceRange]) -> Dict[str, int]:
    """Count of extracted ranges per range type."""
    counts = {range_type.value: 0 for range_type in RangeType}
    for reference_range in ranges:
        counts[reference_range.range_type.value] += 1
    return counts


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_extractor = RangeExtractor()


def extract_ranges(text: Optional[str]) -> RangeExtraction:
    """Extract reference ranges from report text."""
    return _default_extractor.run(text)


def parse_reference_range(range_text: str) -> ReferenceRange:
    """
    Parse a single printed reference range ("74 - 106", "Hasta 200").

    Raises:
        RangeExtractionError: If no range can be read from range_text
    """
    if not range_text or not range_text.strip():
        raise RangeExtractionError("Empty reference range text")
    result = _default_extractor.extract(range_text)
    if not result.ranges:
        raise RangeExtractionError(f"No reference range found in {range_text!r}")
    return max(result.ranges, key=lambda r: (r.confidence, -r.start))
