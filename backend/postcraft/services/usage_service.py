"""Append-only usage ledger for AI invocations.

Ledger rows are only ever inserted.  A failed insert is a ``StorageError``:
it is logged at CRITICAL and propagated, never swallowed, because a lost
billing record cannot be reconstructed.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import StorageError, ValidationError, parse_input, require_user
from postcraft.models.db.usage import UsageLog
from postcraft.models.usage_models import (
    DEFAULT_USAGE_LIMIT,
    MAX_USAGE_LIMIT,
    ActionUsage,
    UsageEntryCreate,
    UsageSummary,
)

logger = logging.getLogger(__name__)


class UsageService:
    """Service layer for the usage ledger."""

    @staticmethod
    async def record_usage(
        db: AsyncSession, entry: UsageEntryCreate | dict[str, Any]
    ) -> UsageLog:
        """Append one entry to the ledger.

        Raises:
            AuthorizationError: If the entry has no user id.
            ValidationError: If the entry is malformed.
            StorageError: If the store rejected or could not take the write.
        """
        if isinstance(entry, dict):
            require_user(entry.get("user_id"))
        else:
            require_user(getattr(entry, "user_id", None))
        payload = parse_input(UsageEntryCreate, entry)

        log = UsageLog(**payload.model_dump())
        try:
            db.add(log)
            await db.flush()
            await db.refresh(log)
        except SQLAlchemyError as e:
            logger.critical(
                "Failed to write usage entry (user=%s action=%s model=%s): %s",
                payload.user_id,
                payload.action_type,
                payload.model_used,
                e,
            )
            raise StorageError(
                "Usage ledger is unavailable",
                details={"action_type": payload.action_type},
            ) from e

        logger.debug(
            "Usage recorded: user=%s action=%s ok=%s",
            log.user_id,
            log.action_type,
            log.is_successful,
        )
        return log

    @staticmethod
    async def list_recent_usage(
        db: AsyncSession, user_id: str, limit: int = DEFAULT_USAGE_LIMIT
    ) -> list[UsageLog]:
        """Return the user's most recent ledger entries, newest first.

        Raises:
            ValidationError: If ``limit`` is outside 1..100. Values are never
                clamped.
        """
        user_id = require_user(user_id)
        if isinstance(limit, bool) or not isinstance(limit, int) or not (
            1 <= limit <= MAX_USAGE_LIMIT
        ):
            raise ValidationError(
                f"limit must be between 1 and {MAX_USAGE_LIMIT}",
                fields=["limit"],
                details={"limit": limit},
            )

        result = await db.execute(
            select(UsageLog)
            .where(UsageLog.user_id == user_id)
            .order_by(UsageLog.created_at.desc(), UsageLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def summarize_usage(
        db: AsyncSession, user_id: str, since: datetime | None = None
    ) -> UsageSummary:
        """Aggregate the user's ledger by action type."""
        user_id = require_user(user_id)
        filters = [UsageLog.user_id == user_id]
        if since is not None:
            filters.append(UsageLog.created_at >= since)

        result = await db.execute(
            select(
                UsageLog.action_type,
                func.count(UsageLog.id),
                func.sum(case((UsageLog.is_successful.is_(False), 1), else_=0)),
                func.coalesce(func.sum(UsageLog.tokens_used), 0),
                func.coalesce(func.sum(UsageLog.api_cost), 0),
            )
            .where(*filters)
            .group_by(UsageLog.action_type)
        )

        summary = UsageSummary(since=since)
        for action_type, calls, failures, tokens, cost in result.all():
            bucket = ActionUsage(
                calls=calls or 0,
                failures=int(failures or 0),
                tokens=int(tokens or 0),
                cost=float(cost or 0),
            )
            summary.by_action[action_type] = bucket
            summary.total_calls += bucket.calls
            summary.failed_calls += bucket.failures
            summary.total_tokens += bucket.tokens
            summary.total_cost += bucket.cost
        summary.total_cost = round(summary.total_cost, 6)
        return summary
