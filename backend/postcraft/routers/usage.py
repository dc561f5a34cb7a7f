"""Usage ledger and pipeline statistics router."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.deps import commit_or_raise, get_current_user_id, get_db
from postcraft.models.usage_models import (
    DEFAULT_USAGE_LIMIT,
    PipelineStats,
    UsageEntryCreate,
    UsageLogRequest,
    UsageResponse,
    UsageSummary,
)
from postcraft.services.stats_service import StatsService
from postcraft.services.usage_service import UsageService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["usage"])


@router.post(
    "/usage", response_model=UsageResponse, status_code=status.HTTP_201_CREATED
)
async def log_usage(
    body: UsageLogRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Append a ledger entry for an AI call made outside the server generator.

    The entry is always attributed to the authenticated user. User agent and
    client address default to the request's own when the body omits them.
    """
    entry = UsageEntryCreate(
        **body.model_dump(),
        user_id=user_id,
    )
    if entry.user_agent is None:
        entry.user_agent = request.headers.get("user-agent")
    if entry.ip_address is None and request.client is not None:
        entry.ip_address = request.client.host
    log = await UsageService.record_usage(db, entry)
    await commit_or_raise(db, "log usage")
    return UsageResponse.model_validate(log)


@router.get("/usage", response_model=list[UsageResponse])
async def list_recent_usage(
    limit: int = Query(DEFAULT_USAGE_LIMIT, description="Entries to return (1-100)"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Return the most recent ledger entries, newest first.

    ``limit`` outside 1..100 is rejected with a validation error rather than
    clamped; the bound is checked in the service.
    """
    entries = await UsageService.list_recent_usage(db, user_id, limit)
    return [UsageResponse.model_validate(e) for e in entries]


@router.get("/usage/summary", response_model=UsageSummary)
async def get_usage_summary(
    days: int = Query(30, ge=1, le=365, description="Look-back window in days"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    since = datetime.now(timezone.utc) - timedelta(days=days)
    return await UsageService.summarize_usage(db, user_id, since=since)


@router.get("/stats", response_model=PipelineStats)
async def get_pipeline_stats(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Aggregated pipeline stats (projects, sessions by status, weekly completions)."""
    return await StatsService.get_pipeline_stats(db, user_id)
