"""Read-only pipeline statistics built from the stored workflow data."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import require_user
from postcraft.models.choices import SESSION_STATUSES, STATUS_COMPLETED
from postcraft.models.db.asset import GeneratedAsset
from postcraft.models.db.project import Project
from postcraft.models.db.session import PostSession
from postcraft.models.db.usage import UsageLog
from postcraft.models.db.version import ContentVersion
from postcraft.models.usage_models import PipelineStats

logger = logging.getLogger(__name__)

RECENT_SESSION_COUNT = 5


class StatsService:
    """Aggregations for the pipeline dashboard."""

    @staticmethod
    async def get_pipeline_stats(
        db: AsyncSession, user_id: str, now: datetime | None = None
    ) -> PipelineStats:
        """Build dashboard stats for a user's pipeline.

        Args:
            db: Async database session.
            user_id: Acting user.
            now: Reference instant for the rolling windows (defaults to now).

        Returns:
            PipelineStats projection. Nothing is written.
        """
        user_id = require_user(user_id)
        now = now or datetime.now(timezone.utc)
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        # --- Projects ---
        project_result = await db.execute(
            select(
                func.count(Project.id),
                func.coalesce(func.sum(case((Project.is_active.is_(True), 1), else_=0)), 0),
            ).where(Project.user_id == user_id)
        )
        total_projects, active_projects = project_result.one()

        # --- Sessions by status ---
        by_status = {status: 0 for status in SESSION_STATUSES}
        status_result = await db.execute(
            select(PostSession.status, func.count(PostSession.id))
            .where(PostSession.user_id == user_id)
            .group_by(PostSession.status)
        )
        for status, count in status_result.all():
            by_status[status] = count

        # --- Completed this week (by last update of a completed session) ---
        completed_result = await db.execute(
            select(func.count(PostSession.id)).where(
                PostSession.user_id == user_id,
                PostSession.status == STATUS_COMPLETED,
                PostSession.updated_at >= week_ago,
            )
        )
        completed_this_week = completed_result.scalar() or 0

        # --- Versions and assets ---
        versions_result = await db.execute(
            select(func.count(ContentVersion.id))
            .select_from(ContentVersion)
            .join(PostSession, PostSession.id == ContentVersion.session_id)
            .where(PostSession.user_id == user_id)
        )
        assets_result = await db.execute(
            select(func.count(GeneratedAsset.id))
            .select_from(GeneratedAsset)
            .join(PostSession, PostSession.id == GeneratedAsset.session_id)
            .where(PostSession.user_id == user_id)
        )

        # --- Usage cost over the last 30 days ---
        cost_result = await db.execute(
            select(func.coalesce(func.sum(UsageLog.api_cost), 0)).where(
                UsageLog.user_id == user_id,
                UsageLog.created_at >= month_ago,
            )
        )

        # --- Recent sessions ---
        recent_result = await db.execute(
            select(PostSession)
            .where(PostSession.user_id == user_id)
            .order_by(PostSession.updated_at.desc(), PostSession.id.desc())
            .limit(RECENT_SESSION_COUNT)
        )
        recent = [
            {
                "id": s.id,
                "project_id": s.project_id,
                "post_idea": s.post_idea[:120],
                "status": s.status,
                "current_step": s.current_step,
                "updated_at": s.updated_at.isoformat() if s.updated_at else None,
            }
            for s in recent_result.scalars().all()
        ]

        return PipelineStats(
            total_projects=total_projects or 0,
            active_projects=int(active_projects or 0),
            sessions_by_status=by_status,
            sessions_completed_this_week=completed_this_week,
            total_versions=versions_result.scalar() or 0,
            total_assets=assets_result.scalar() or 0,
            usage_cost_last_30_days=round(float(cost_result.scalar() or 0), 6),
            recent_sessions=recent,
        )
