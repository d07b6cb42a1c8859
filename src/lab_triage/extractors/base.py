# ============================================================================
# src/lab_triage/extractors/base.py
# ============================================================================
"""
Abstract Base Extractor

Identity, marker, range and abnormality extraction all inherit from
this class so any strategy (pattern cascade today, a learned model
tomorrow) can be swapped without touching scoring or decisions.

Every extractor must implement:
- extract(text, **inputs): produce typed candidates with confidence
- empty_result(): the zero-result value for this extractor
- get_name(): extractor identifier

Every extractor gets:
- ExtractionSettings (module defaults unless overridden)
- Logging
- Timing
- Error containment (failures degrade to an empty result)
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
import logging
import time

from ..config import ExtractionSettings, extraction_settings


class Extractor(ABC):
    """
    Abstract base class for pipeline extraction stages.

    Design principles:
    1. Pure - output depends only on the text and explicit inputs
    2. Total - arbitrary text never raises out of run()
    3. Confidence on every candidate (0-100)
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or extraction_settings
        self.logger = logging.getLogger(f"{__name__}.{self.get_name()}")

    @abstractmethod
    def extract(self, text: str, **inputs) -> Any:
        """
        Main extraction logic.

        Args:
            text: Cleaned report text
            **inputs: Upstream results this stage depends on

        Returns:
            Stage-specific immutable result object
        """
        pass

    @abstractmethod
    def empty_result(self) -> Any:
        """Result returned for empty input or after a failure."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Return extractor name for logging.

        Example: "IdentityExtractor"
        """
        pass

    def run(self, text: Optional[str], errors: Optional[List[str]] = None, **inputs) -> Any:
        """
        Wrapper around extract() that handles logging, timing, and errors.

        This method is called by the pipeline, not extract() directly.
        Failures are appended to errors (if given) instead of raising.
        """
        name = self.get_name()

        if not text or not text.strip():
            self.logger.debug(f"{name}: empty text, returning empty result")
            return self.empty_result()

        start_time = time.perf_counter()
        try:
            result = self.extract(text, **inputs)
        except Exception as e:
            duration = time.perf_counter() - start_time
            self.logger.error(f"{name} failed after {duration:.3f}s: {str(e)}", exc_info=True)
            if errors is not None:
                errors.append(f"{name} failed: {str(e)}")
            return self.empty_result()

        duration = time.perf_counter() - start_time
        self.logger.debug(f"{name} completed in {duration:.3f}s")
        return result

    # ========================================================================
    # HELPER METHODS (Available to all extractors)
    # ========================================================================

    @staticmethod
    def clamp(score: float, low: float = 0.0, high: float = 100.0) -> float:
        """Clamp a confidence score into [low, high]."""
        return max(low, min(high, score))
