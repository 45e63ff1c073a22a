from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter

from api.requests import (
    AutoAnalyzeRequest,
    BatchRequest,
    CausalChainRequest,
    FieldStatsRequest,
    LogPageRequest,
    ScopeRequest,
    SummaryRequest,
)
from api.responses import (
    BatchComparison,
    CausalChain,
    CombinedReport,
    CountReport,
    ErrorSignature,
    FieldStatsResult,
    FullReport,
    NotApplicable,
    ScopeReport,
    SummaryReport,
    Timeline,
)
from api.routes.common import load_page, window_for
from api.routes.exception import handle_exceptions
from engine.batches import compare_batches
from engine.chain import build_causal_chain
from engine.dispatcher import analyze_auto
from engine.fieldstats import compute_field_stats
from engine.scope import analyze_scope, count_only, full_page, summarize
from engine.signatures import cluster_errors
from engine.timeline import build_timeline

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.post("/scope", response_model=ScopeReport, summary="Volume, density and breakdown of a log page")
@handle_exceptions
async def log_scope(req: ScopeRequest) -> ScopeReport:
    window = window_for(req)
    return analyze_scope(load_page(req), time_span_ms=window.span_ms)


@router.post("/summary", response_model=Union[FullReport, SummaryReport, CountReport])
@handle_exceptions
async def log_summary(req: SummaryRequest) -> Union[FullReport, SummaryReport, CountReport]:
    window = window_for(req)
    page = load_page(req)
    if req.format == "full":
        return full_page(page, query=req.query, window=window)
    if req.format == "count":
        return count_only(page, query=req.query, window=window)
    return summarize(page, query=req.query, window=window)


@router.post("/timeline", response_model=Timeline, summary="Chronological classified event timeline")
@handle_exceptions
async def log_timeline(req: LogPageRequest) -> Timeline:
    return build_timeline(load_page(req))


@router.post("/signatures", response_model=List[ErrorSignature], summary="Clustered error signatures")
@handle_exceptions
async def log_signatures(req: LogPageRequest) -> List[ErrorSignature]:
    return cluster_errors(load_page(req))


@router.post("/field-stats", response_model=FieldStatsResult, summary="Statistics and outliers for a numeric field")
@handle_exceptions
async def log_field_stats(req: FieldStatsRequest) -> FieldStatsResult:
    return compute_field_stats(load_page(req), req.field)


@router.post("/batches", response_model=Union[BatchComparison, NotApplicable])
@handle_exceptions
async def log_batches(req: BatchRequest) -> Union[BatchComparison, NotApplicable]:
    return compare_batches(load_page(req), batch_field=req.batch_field)


@router.post("/causal-chain", response_model=Union[CausalChain, NotApplicable])
@handle_exceptions
async def log_causal_chain(req: CausalChainRequest) -> Union[CausalChain, NotApplicable]:
    return build_causal_chain(
        load_page(req),
        correlation_field=req.correlation_field,
        lookback_minutes=req.lookback_minutes,
    )


@router.post("/auto", response_model=CombinedReport, summary="Run every applicable analyzer and merge insights")
@handle_exceptions
async def log_auto(req: AutoAnalyzeRequest) -> CombinedReport:
    return analyze_auto(
        load_page(req),
        batch_field=req.batch_field,
        correlation_field=req.correlation_field,
        lookback_minutes=req.lookback_minutes,
    )
