# ============================================================================
# src/lab_triage/config/extraction_config.py
# ============================================================================
"""
Extraction Windows
- How far extractors look around a match
- Range filtering and de-duplication
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class ExtractionSettings(BaseSettings):
    MARKER_VALUE_WINDOW: int = Field(
        default=60,
        ge=1,
        description="Characters after a marker name scanned for its value"
    )
    RANGE_SEARCH_WINDOW: int = Field(
        default=300,
        ge=1,
        description="Characters after a marker name scanned for its reference range"
    )
    MIN_RANGE_CONFIDENCE: float = Field(
        default=50.0,
        ge=0.0, le=100.0,
        description="Reference ranges below this confidence are discarded"
    )
    RANGE_DEDUP_DISTANCE: int = Field(
        default=20,
        ge=0,
        description="Ranges with identical bounds closer than this are duplicates"
    )
    IDENTITY_CONTEXT_CHARS: int = Field(
        default=50,
        ge=0,
        description="Context captured on each side of an identity candidate"
    )
    HEADER_REGION_CHARS: int = Field(
        default=200,
        ge=0,
        description="Identity candidates starting within this prefix count as header"
    )

extraction_settings = ExtractionSettings()
