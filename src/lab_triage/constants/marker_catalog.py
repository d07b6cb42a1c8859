# ============================================================================
# src/lab_triage/constants/marker_catalog.py
# ============================================================================
"""
Health Marker Catalog
- Spanish lab test names used on Chilean reports
- Category, clinical priority and recognized units per marker
- Name variants (accent-free, parenthesis-free) for matching
"""

import json
import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.context.catalog_entries import MarkerDefinition
from ..core.context.enums import MarkerCategory, MarkerPriority
from ..utils.exceptions import CatalogError
from ..utils.text_normalizer import fold_text

# Path: constants/ -> lab_triage/ -> knowledge/
_knowledge_dir = Path(__file__).parent.parent / "knowledge"


def _load_markers(path: Path) -> Tuple[MarkerDefinition, ...]:
    try:
        with open(path, encoding="utf-8") as f:
            rows = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot load marker catalog {path}: {e}") from e

    markers = []
    for row in rows:
        try:
            markers.append(MarkerDefinition(
                code=row["code"],
                name=row["name"],
                category=MarkerCategory(row["category"]),
                priority=MarkerPriority(row["priority"]),
                aliases=tuple(row.get("aliases", ())),
                units=tuple(row.get("units", ())),
                description=row.get("description", ""),
            ))
        except (KeyError, ValueError) as e:
            raise CatalogError(f"Invalid marker catalog row {row!r}: {e}") from e
    return tuple(markers)


def name_variants(name: str) -> List[str]:
    """
    Matching variants of a printed marker name.

    "GLICEMIA EN AYUNO (BASAL)" -> ["GLICEMIA EN AYUNO (BASAL)", "GLICEMIA EN AYUNO"]
    "ÁCIDO ÚRICO" -> ["ACIDO URICO"]
    """
    folded = ' '.join(fold_text(name).split())
    variants = [folded]
    without_parens = ' '.join(re.sub(r'\([^)]*\)', ' ', folded).split())
    if without_parens and without_parens != folded:
        variants.append(without_parens)
    return variants


def _build_lookup(markers: Tuple[MarkerDefinition, ...]) -> Dict[str, MarkerDefinition]:
    lookup: Dict[str, MarkerDefinition] = {}
    for marker in markers:
        for name in marker.names:
            for variant in name_variants(name):
                existing = lookup.get(variant)
                if existing is not None and existing.code != marker.code:
                    raise CatalogError(
                        f"Marker name {variant!r} maps to both {existing.code} and {marker.code}"
                    )
                lookup[variant] = marker
    return lookup


HEALTH_MARKERS: Tuple[MarkerDefinition, ...] = _load_markers(_knowledge_dir / "health_markers.json")

# Folded name variant -> marker
MARKER_LOOKUP: Mapping[str, MarkerDefinition] = MappingProxyType(_build_lookup(HEALTH_MARKERS))

MARKERS_BY_CODE: Mapping[str, MarkerDefinition] = MappingProxyType(
    {marker.code: marker for marker in HEALTH_MARKERS}
)


def get_marker(code: str) -> Optional[MarkerDefinition]:
    """Catalog entry for a marker code."""
    return MARKERS_BY_CODE.get(code)


def find_marker_by_name(name: str) -> Optional[MarkerDefinition]:
    """Catalog entry for a printed name (any accent / case / parenthesis variant)."""
    for variant in name_variants(name):
        marker = MARKER_LOOKUP.get(variant)
        if marker is not None:
            return marker
    return None
