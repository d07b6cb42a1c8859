# ============================================================================
# src/lab_triage/core/pipeline.py
# ============================================================================
"""
Lab Report Triage Pipeline

This is the MAIN entry point for report processing.

Flow:
1. Clean the text and split it into pages
2. Extract patient identity, health markers and reference ranges
3. Detect abnormal values (markers + ranges + inline glyphs)
4. Score extraction confidence
5. Evaluate critical values (safety override)
6. Decide: auto_process / manual_review / escalate / reject

The pipeline is total: any text, including None or "", yields a
PipelineResult. Failures inside a stage degrade that stage to an empty
result and are listed in stage_errors.
"""

import logging
from typing import List, Optional, Sequence

from ..extractors.identity_extractor import IdentityExtractor
from ..extractors.marker_extractor import MarkerExtractor
from ..extractors.range_extractor import RangeExtractor
from ..utils.logging import LogContext, log_performance
from ..utils.text_normalizer import clean_lab_text, join_pages, page_offsets, split_pages
from ..validators.abnormality_detector import AbnormalityDetector
from ..validators.critical_override import CriticalOverride
from .confidence import ConfidenceScorer
from .context.enums import Verdict
from .context.results import (
    AbnormalityReport,
    CriticalOverrideResult,
    IdentityExtraction,
    MarkerExtraction,
    PipelineResult,
    RangeExtraction,
)
from .decision import DecisionEngine

logger = logging.getLogger(__name__)


class TriagePipeline:
    """
    Runs every stage for one report.

    Stages are held as attributes so a caller can swap any of them
    (e.g. a different identity extractor) without touching the rest.
    """

    def __init__(
        self,
        identity_extractor: Optional[IdentityExtractor] = None,
        marker_extractor: Optional[MarkerExtractor] = None,
        range_extractor: Optional[RangeExtractor] = None,
        abnormality_detector: Optional[AbnormalityDetector] = None,
        scorer: Optional[ConfidenceScorer] = None,
        critical_override: Optional[CriticalOverride] = None,
        decision_engine: Optional[DecisionEngine] = None,
    ):
        self.identity_extractor = identity_extractor or IdentityExtractor()
        self.marker_extractor = marker_extractor or MarkerExtractor()
        self.range_extractor = range_extractor or RangeExtractor()
        self.abnormality_detector = abnormality_detector or AbnormalityDetector()
        self.scorer = scorer or ConfidenceScorer()
        self.critical_override = critical_override or CriticalOverride()
        self.decision_engine = decision_engine or DecisionEngine()

    # ========================================================================
    # MAIN PROCESSING PIPELINE
    # ========================================================================

    @log_performance(logger, "Report triage")
    def process(
        self,
        text: Optional[str],
        pages: Optional[Sequence[str]] = None,
        document_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Triage one lab report.

        Args:
            text: Plain report text (ignored when pages are given)
            pages: Optional per-page text; joined with form feeds
            document_id: Caller's id for the report, stamped on every log
                record emitted while it is processed

        Returns:
            PipelineResult with every stage's output and the decision

        Example:
            result = pipeline.process("RUT: 12.345.678-5\\nGLICEMIA 269 mg/dL [ * ] 74 - 106")
            result.decision.verdict  # Verdict.ESCALATE / MANUAL_REVIEW / ...
        """
        if document_id is None:
            return self._run(text, pages)
        with LogContext(logger, document_id=document_id):
            return self._run(text, pages)

    def _run(self, text: Optional[str], pages: Optional[Sequence[str]]) -> PipelineResult:
        # ================================================================
        # STEP 1: Text preparation
        # ================================================================
        if pages:
            page_list = [clean_lab_text(page) for page in pages]
        else:
            page_list = split_pages(clean_lab_text(text))
        full_text = join_pages(page_list)
        offsets = page_offsets(page_list)

        errors: List[str] = []

        if not full_text.strip():
            logger.info("Empty report text, rejecting without extraction")
            return self._empty_result(full_text, page_list)

        # ================================================================
        # STEP 2: Independent extraction
        # ================================================================
        identity = self.identity_extractor.run(full_text, errors=errors)
        markers = self.marker_extractor.run(full_text, errors=errors, page_offsets=offsets)
        ranges = self.range_extractor.run(full_text, errors=errors)

        # ================================================================
        # STEP 3: Abnormality detection
        # ================================================================
        abnormalities = self.abnormality_detector.detect(full_text, markers, ranges, errors=errors)

        # ================================================================
        # STEP 4: Confidence, critical override, decision
        # ================================================================
        confidence = self.scorer.score(identity, markers, ranges, abnormalities)
        override = self.critical_override.evaluate(abnormalities, confidence)
        decision = self.decision_engine.decide(confidence, abnormalities, identity, override)

        summary = None
        if decision.verdict == Verdict.AUTO_PROCESS:
            summary = self.decision_engine.build_summary(decision, abnormalities, identity)

        if errors:
            logger.warning(f"{len(errors)} stage error(s): {'; '.join(errors)}")

        return PipelineResult(
            text=full_text,
            pages=tuple(page_list),
            identity=identity,
            markers=markers,
            ranges=ranges,
            abnormalities=abnormalities,
            confidence=confidence,
            critical_override=override,
            decision=decision,
            summary=summary,
            stage_errors=tuple(errors),
        )

    def _empty_result(self, full_text: str, page_list: List[str]) -> PipelineResult:
        identity = IdentityExtraction()
        abnormalities = AbnormalityReport()
        confidence = self.scorer.empty_report()
        override = CriticalOverrideResult()
        decision = self.decision_engine.decide(confidence, abnormalities, identity, override)
        return PipelineResult(
            text=full_text,
            pages=tuple(page_list),
            identity=identity,
            markers=MarkerExtraction(),
            ranges=RangeExtraction(),
            abnormalities=abnormalities,
            confidence=confidence,
            critical_override=override,
            decision=decision,
        )


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_default_pipeline = None


def get_pipeline() -> TriagePipeline:
    """Shared default pipeline (catalog patterns are compiled once)."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = TriagePipeline()
    return _default_pipeline


def process_report(
    text: Optional[str],
    pages: Optional[Sequence[str]] = None,
    document_id: Optional[str] = None,
) -> PipelineResult:
    """Triage one lab report with the default pipeline."""
    return get_pipeline().process(text, pages=pages, document_id=document_id)
