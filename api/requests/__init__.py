from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class LogPageRequest(BaseModel):
    # an already-fetched page of the upstream log search response
    data: List[Dict[str, Any]] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)
    include_tags: bool = False


class ScopeRequest(LogPageRequest):
    query: str = ""
    time_range: Optional[str] = None
    from_ms: Optional[int] = Field(default=None, ge=0)
    to_ms: Optional[int] = Field(default=None, ge=0)


class SummaryRequest(ScopeRequest):
    format: Literal["full", "count", "summary"] = "full"


class FieldStatsRequest(LogPageRequest):
    field: str = ""


class BatchRequest(LogPageRequest):
    batch_field: Optional[str] = None


class CausalChainRequest(LogPageRequest):
    correlation_field: Optional[str] = None
    lookback_minutes: int = Field(default=60, ge=1, le=10080)


class AutoAnalyzeRequest(LogPageRequest):
    batch_field: Optional[str] = None
    correlation_field: Optional[str] = None
    lookback_minutes: int = Field(default=60, ge=1, le=10080)
