from __future__ import annotations

import logging
from typing import List, Optional

from api.responses import (
    Applicability,
    BatchComparison,
    CausalChain,
    CombinedReport,
    ErrorSignature,
    NotApplicable,
)
from engine.batches import compare_batches, detect_batch_field
from engine.chain import build_causal_chain, detect_correlation_field
from engine.errors import MissingRequiredInput
from engine.records import ResultSet, has_value, is_error
from engine.signatures import cluster_errors

log = logging.getLogger(__name__)

_LABELS = {
    "error_signatures": "error signature clustering",
    "batch_comparison": "batch outcome comparison",
    "causal_chain": "causal chain reconstruction",
}


def _applicability(
    result_set: ResultSet,
    batch_field: Optional[str],
    correlation_field: Optional[str],
) -> Applicability:
    records = result_set.records
    has_errors = any(is_error(r) for r in records)
    if batch_field:
        has_batches = any(has_value(r, batch_field) for r in records)
    else:
        has_batches = detect_batch_field(records) is not None

    # correlation ids are only probed on the first record
    first = records[0] if records else None
    if first is None:
        has_correlation = False
    elif correlation_field:
        has_correlation = has_value(first, correlation_field)
    else:
        has_correlation = detect_correlation_field(first) is not None

    return Applicability(
        has_errors=has_errors,
        has_batches=has_batches,
        has_correlation_ids=has_correlation,
    )


def _insights(
    signatures: List[ErrorSignature],
    batch: Optional[BatchComparison],
    chain: Optional[CausalChain],
) -> List[str]:
    insights: List[str] = []
    if batch is not None:
        insights.append(
            f"Batch {batch.batch_id}: {batch.hypothesis} "
            f"(confidence {batch.confidence:.0%}). {batch.recommendation}"
        )
    if chain is not None:
        insights.append(
            f"Causal chain for {chain.correlation_field}={chain.entity_id}: {chain.conclusion} "
            f"({len(chain.anomalies)} anomaly(ies)). Recommendations: {' '.join(chain.recommendations)}"
        )
    if signatures:
        top = signatures[0]
        insights.append(
            f"Top error signature: {top.pattern_name} ({top.count} occurrence(s), "
            f"severity {top.severity.value}, trend {top.trend.value})."
        )
    return insights


def _usage_hint(analyses: List[str]) -> str:
    if not analyses:
        return "No analyses ran: the logs contain no error records to analyze."
    if len(analyses) == 1:
        return (
            f"Ran {_LABELS[analyses[0]]} only. Include a batch field (batch_id, transaction_id) "
            "or a correlation field (order_id, trace_id) in the logs for deeper analysis."
        )
    return "Ran " + ", ".join(_LABELS[a] for a in analyses) + "."


def analyze_auto(
    result_set: ResultSet,
    batch_field: Optional[str] = None,
    correlation_field: Optional[str] = None,
    lookback_minutes: Optional[int] = None,
) -> CombinedReport:
    flags = _applicability(result_set, batch_field, correlation_field)
    analyses: List[str] = []
    signatures: List[ErrorSignature] = []
    batch: Optional[BatchComparison] = None
    chain: Optional[CausalChain] = None

    if flags.has_errors:
        signatures = cluster_errors(result_set)
        analyses.append("error_signatures")

    if flags.has_batches and flags.has_errors:
        outcome = compare_batches(result_set, batch_field=batch_field)
        if isinstance(outcome, NotApplicable):
            log.debug("analyze_auto: batch comparison skipped: %s", outcome.message)
        else:
            batch = outcome
            analyses.append("batch_comparison")

    if flags.has_correlation_ids and flags.has_errors:
        try:
            outcome = build_causal_chain(
                result_set,
                correlation_field=correlation_field,
                lookback_minutes=lookback_minutes,
            )
        except MissingRequiredInput as exc:
            outcome = NotApplicable(analysis="causal_chain", message=str(exc), suggestion="")
        if isinstance(outcome, NotApplicable):
            log.debug("analyze_auto: causal chain skipped: %s", outcome.message)
        else:
            chain = outcome
            analyses.append("causal_chain")

    log.info("analyze_auto: records=%d analyses=%s", len(result_set), analyses or "none")

    return CombinedReport(
        applicability=flags,
        analyses_run=analyses,
        error_signatures=signatures,
        batch_comparison=batch,
        causal_chain=chain,
        insights=_insights(signatures, batch, chain),
        usage_hint=_usage_hint(analyses),
    )
