"""Pydantic schemas for the usage ledger and pipeline statistics."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from postcraft.models.choices import ActionType

DEFAULT_USAGE_LIMIT = 50
MAX_USAGE_LIMIT = 100


class UsageLogRequest(BaseModel):
    """A client-reported AI call; the acting user comes from the token."""

    action_type: ActionType
    model_used: str = Field(..., min_length=1, max_length=100)
    tokens_used: Optional[int] = Field(None, ge=0)
    api_cost: Optional[Decimal] = Field(None, ge=0)
    processing_time: Optional[float] = Field(None, ge=0)
    project_id: Optional[int] = None
    session_id: Optional[int] = None
    is_successful: bool = True
    error_message: Optional[str] = None
    request_payload: Optional[Dict[str, Any]] = None
    response_size: Optional[int] = Field(None, ge=0)
    retry_count: int = Field(0, ge=0)
    user_agent: Optional[str] = None
    ip_address: Optional[str] = Field(None, max_length=64)


class UsageEntryCreate(UsageLogRequest):
    """One AI invocation attempt to append to the ledger."""

    user_id: str = Field(..., min_length=1, max_length=255)


class UsageResponse(BaseModel):
    id: int
    user_id: str
    project_id: Optional[int] = None
    session_id: Optional[int] = None
    action_type: str
    model_used: str
    tokens_used: Optional[int] = None
    api_cost: Optional[float] = None
    processing_time: Optional[float] = None
    is_successful: bool
    error_message: Optional[str] = None
    request_payload: Optional[Dict[str, Any]] = None
    response_size: Optional[int] = None
    retry_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class ActionUsage(BaseModel):
    """Totals for one action type."""

    calls: int = 0
    failures: int = 0
    tokens: int = 0
    cost: float = 0.0


class UsageSummary(BaseModel):
    since: Optional[datetime] = None
    total_calls: int = 0
    failed_calls: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    by_action: Dict[str, ActionUsage] = Field(default_factory=dict)


class PipelineStats(BaseModel):
    """Read-only projection over projects, sessions, versions and usage."""

    total_projects: int = 0
    active_projects: int = 0
    sessions_by_status: Dict[str, int] = Field(default_factory=dict)
    sessions_completed_this_week: int = 0
    total_versions: int = 0
    total_assets: int = 0
    usage_cost_last_30_days: float = 0.0
    recent_sessions: List[Dict[str, Any]] = Field(default_factory=list)
