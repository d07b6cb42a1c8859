# ============================================================================
# src/lab_triage/core/analytics.py
# ============================================================================
"""
Batch Analytics

Aggregates a batch of pipeline results for threshold tuning:
- confidence trend (mean / min / max / stdev, distribution by recommendation)
- verdict rates and risk distribution
- most common deny reasons
- critical override counts per marker
"""

import logging
import statistics
from collections import Counter
from typing import Any, Dict, List, Sequence

from .context.enums import ConfidenceRecommendation, Verdict
from .context.results import PipelineResult
from .decision import DENY_CRITICAL_COUNT, DENY_IDENTITY

logger = logging.getLogger(__name__)


LOW_AUTO_APPROVAL_RATE = 50
HIGH_AUTO_APPROVAL_RATE = 80
HIGH_REJECTION_RATE = 30
LOW_AVERAGE_CONFIDENCE = 75
TOP_DENY_REASONS = 5


def _rate(count: int, total: int) -> int:
    return int(round(count / total * 100)) if total else 0


def _reason_key(reason: str) -> str:
    # "identity confidence too low (40 < 80)" -> "identity confidence too low"
    return reason.split(" (", 1)[0]


def summarize_batch(results: Sequence[PipelineResult]) -> Dict[str, Any]:
    """
    Summarize decisions over a batch of processed reports.

    Returns:
        {
            "total": int,
            "confidence": {"mean", "min", "max", "stdev", "by_recommendation"},
            "verdicts": {verdict: count},
            "auto_approval_rate": int,      # percent
            "manual_review_rate": int,
            "escalation_rate": int,
            "rejection_rate": int,
            "risk_distribution": {risk level: count},
            "common_deny_reasons": [str],
            "critical_overrides": {"documents", "alerts", "by_marker"},
            "recommendations": [str],
        }
    """
    total = len(results)
    if total == 0:
        return {
            "total": 0,
            "confidence": {
                "mean": 0.0, "min": 0, "max": 0, "stdev": 0.0,
                "by_recommendation": {r.value: 0 for r in ConfidenceRecommendation},
            },
            "verdicts": {v.value: 0 for v in Verdict},
            "auto_approval_rate": 0,
            "manual_review_rate": 0,
            "escalation_rate": 0,
            "rejection_rate": 0,
            "risk_distribution": {},
            "common_deny_reasons": [],
            "critical_overrides": {"documents": 0, "alerts": 0, "by_marker": {}},
            "recommendations": ["no data to analyze"],
        }

    scores = [r.confidence.overall_score for r in results]
    by_recommendation = Counter(r.confidence.recommendation.value for r in results)
    verdicts = Counter(r.decision.verdict.value for r in results)
    risk_distribution = Counter(r.decision.risk_level.value for r in results)

    deny_counts = Counter(
        _reason_key(reason)
        for r in results
        for reason in r.decision.audit_trail.deny_reasons
    )
    common_deny_reasons = [reason for reason, _ in deny_counts.most_common(TOP_DENY_REASONS)]

    alerts_by_marker = Counter(
        alert.marker_code
        for r in results
        for alert in r.critical_override.alerts
    )
    override_documents = sum(1 for r in results if r.critical_override.has_critical_values)

    auto_rate = _rate(verdicts[Verdict.AUTO_PROCESS.value], total)
    reject_rate = _rate(verdicts[Verdict.REJECT.value], total)
    mean_confidence = statistics.mean(scores)

    recommendations: List[str] = []
    if auto_rate < LOW_AUTO_APPROVAL_RATE:
        recommendations.append("low auto-approval rate - review confidence thresholds")
    elif auto_rate > HIGH_AUTO_APPROVAL_RATE:
        recommendations.append("high auto-approval rate - system performing well")
    if reject_rate > HIGH_REJECTION_RATE:
        recommendations.append("high rejection rate - improve source text quality or extraction")
    if DENY_IDENTITY in common_deny_reasons:
        recommendations.append("improve identity detection - common cause of denial")
    if DENY_CRITICAL_COUNT in common_deny_reasons:
        recommendations.append("many critical cases - review safety thresholds")
    if mean_confidence < LOW_AVERAGE_CONFIDENCE:
        recommendations.append("low average confidence - tune extraction patterns")

    summary = {
        "total": total,
        "confidence": {
            "mean": round(mean_confidence, 2),
            "min": min(scores),
            "max": max(scores),
            "stdev": round(statistics.pstdev(scores), 2),
            "by_recommendation": {
                r.value: by_recommendation.get(r.value, 0) for r in ConfidenceRecommendation
            },
        },
        "verdicts": {v.value: verdicts.get(v.value, 0) for v in Verdict},
        "auto_approval_rate": auto_rate,
        "manual_review_rate": _rate(verdicts[Verdict.MANUAL_REVIEW.value], total),
        "escalation_rate": _rate(verdicts[Verdict.ESCALATE.value], total),
        "rejection_rate": reject_rate,
        "risk_distribution": dict(risk_distribution),
        "common_deny_reasons": common_deny_reasons,
        "critical_overrides": {
            "documents": override_documents,
            "alerts": sum(alerts_by_marker.values()),
            "by_marker": dict(alerts_by_marker),
        },
        "recommendations": recommendations,
    }
    logger.info(
        f"Batch of {total}: auto {auto_rate}%, reject {reject_rate}%, "
        f"mean confidence {summary['confidence']['mean']}"
    )
    return summary
