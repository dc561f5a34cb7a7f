"""Session state machine for the content generation pipeline.

A session moves ``ideation → generating → reviewing → selecting →
completed``.  ``current_step`` mirrors ``status`` except for the
``asset_pending`` sub-state, which can be entered from ``generating`` or
``reviewing`` when the session needs a visual asset and is cleared once an
asset is recorded.  Every transition is checked against
``ALLOWED_TRANSITIONS`` and written to ``ai_session_status_history``.
"""

import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import InvalidStateError, parse_input, require_user
from postcraft.models.choices import (
    ASSET_REQUIRED_CONTENT_TYPES,
    STATUS_COMPLETED,
    STATUS_GENERATING,
    STATUS_IDEATION,
    STATUS_REVIEWING,
    STATUS_SELECTING,
    STEP_ASSET_PENDING,
)
from postcraft.models.db.asset import GeneratedAsset
from postcraft.models.db.project import Project
from postcraft.models.db.session import PostSession, SessionStatusHistory
from postcraft.models.db.version import ContentVersion
from postcraft.models.session_models import SessionCreate, SessionUpdate
from postcraft.services.access_control import get_owned_project, get_owned_session

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Allowed status transitions
# ---------------------------------------------------------------------------
ALLOWED_TRANSITIONS: dict[str, list[str]] = {
    STATUS_IDEATION: [STATUS_GENERATING],
    STATUS_GENERATING: [STATUS_REVIEWING],
    STATUS_REVIEWING: [STATUS_GENERATING, STATUS_SELECTING, STATUS_COMPLETED],
    STATUS_SELECTING: [STATUS_GENERATING, STATUS_COMPLETED],
    # Terminal state -- no outgoing transitions
    STATUS_COMPLETED: [],
}

# Statuses during which the asset sub-step may be entered or kept
ASSET_STEP_STATUSES = {STATUS_GENERATING, STATUS_REVIEWING}


def derive_needs_asset(content_type: str, explicit: bool | None = None) -> bool:
    """Decide whether a session carries an asset step."""
    if explicit is not None:
        return explicit
    return content_type in ASSET_REQUIRED_CONTENT_TYPES


def _next_step(old_step: str, new_status: str) -> str:
    if old_step == STEP_ASSET_PENDING and new_status in ASSET_STEP_STATUSES:
        return STEP_ASSET_PENDING
    return new_status


class SessionService:
    """Service layer for post sessions and their workflow."""

    # ------------------------------------------------------------------
    # create_session
    # ------------------------------------------------------------------

    @staticmethod
    async def create_session(
        db: AsyncSession,
        user_id: str,
        project_id: int,
        data: SessionCreate | dict[str, Any],
    ) -> PostSession:
        """Start a new session under a project the user owns.

        Args:
            db: Async database session.
            user_id: Acting user.
            project_id: Parent project.
            data: Session input; ``post_idea`` and ``selected_model`` required.

        Returns:
            The new PostSession in ``ideation``.

        Raises:
            AuthorizationError: If *user_id* is missing.
            ValidationError: If the input is invalid.
            NotFoundError: If the project is absent or not owned by the user.
        """
        user_id = require_user(user_id)
        payload = parse_input(SessionCreate, data)
        project = await get_owned_project(db, project_id, user_id, for_update=True)

        session = PostSession(
            project_id=project.id,
            user_id=project.user_id,
            post_idea=payload.post_idea.strip(),
            additional_context=payload.additional_context,
            target_content_type=payload.target_content_type,
            selected_model=payload.selected_model.strip(),
            custom_prompt=payload.custom_prompt,
            status=STATUS_IDEATION,
            current_step=STATUS_IDEATION,
            total_versions=0,
            needs_asset=derive_needs_asset(
                payload.target_content_type, payload.needs_asset
            ),
            asset_generated=False,
            is_completed=False,
        )
        db.add(session)
        project.total_sessions = (project.total_sessions or 0) + 1
        await db.flush()

        db.add(
            SessionStatusHistory(
                session_id=session.id,
                old_status=None,
                new_status=STATUS_IDEATION,
                old_step=None,
                new_step=STATUS_IDEATION,
                changed_by=user_id,
                reason="Session created",
            )
        )
        await db.flush()
        await db.refresh(session)
        logger.info(
            "Created session %s in project %s (needs_asset=%s)",
            session.id,
            project.id,
            session.needs_asset,
        )
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def list_sessions(
        db: AsyncSession, user_id: str, project_id: int
    ) -> list[PostSession]:
        """Return the project's sessions, newest first.

        Raises:
            NotFoundError: If the project is absent or not owned by the user.
        """
        project = await get_owned_project(db, project_id, user_id)
        result = await db.execute(
            select(PostSession)
            .where(
                PostSession.project_id == project.id,
                PostSession.user_id == project.user_id,
            )
            .order_by(PostSession.created_at.desc(), PostSession.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_session(db: AsyncSession, user_id: str, session_id: int) -> PostSession:
        return await get_owned_session(db, session_id, user_id)

    @staticmethod
    async def list_status_history(
        db: AsyncSession, user_id: str, session_id: int
    ) -> list[SessionStatusHistory]:
        session = await get_owned_session(db, session_id, user_id)
        result = await db.execute(
            select(SessionStatusHistory)
            .where(SessionStatusHistory.session_id == session.id)
            .order_by(SessionStatusHistory.created_at, SessionStatusHistory.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # update_session / delete_session
    # ------------------------------------------------------------------

    @staticmethod
    async def update_session(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        data: SessionUpdate | dict[str, Any],
    ) -> PostSession:
        """Edit the non-workflow fields of an open session.

        Raises:
            ValidationError: If the input is invalid.
            NotFoundError: If the session is absent or foreign.
            InvalidStateError: If the session is completed.
        """
        user_id = require_user(user_id)
        payload = parse_input(SessionUpdate, data)
        session = await get_owned_session(db, session_id, user_id, for_update=True)
        if session.is_completed:
            raise InvalidStateError(
                "Completed sessions cannot be edited",
                details={"session_id": session.id, "status": session.status},
            )

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field in (
                "post_idea",
                "selected_model",
                "target_content_type",
            ):
                continue
            if isinstance(value, str) and field in ("post_idea", "selected_model"):
                value = value.strip()
            setattr(session, field, value)

        await db.flush()
        await db.refresh(session)
        return session

    @staticmethod
    async def delete_session(db: AsyncSession, user_id: str, session_id: int) -> None:
        """Delete a session with its versions, assets and history.

        Usage ledger rows are left untouched.
        """
        session = await get_owned_session(db, session_id, user_id, for_update=True)
        was_completed = session.is_completed
        project_id = session.project_id

        await db.execute(
            delete(ContentVersion).where(ContentVersion.session_id == session.id)
        )
        await db.execute(
            delete(GeneratedAsset).where(GeneratedAsset.session_id == session.id)
        )
        await db.execute(
            delete(SessionStatusHistory).where(
                SessionStatusHistory.session_id == session.id
            )
        )
        await db.delete(session)

        values: dict[str, Any] = {"total_sessions": Project.total_sessions - 1}
        if was_completed:
            values["total_posts"] = Project.total_posts - 1
        await db.execute(
            update(Project)
            .where(Project.id == project_id, Project.total_sessions > 0)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await db.flush()
        logger.info("Deleted session %s from project %s", session_id, project_id)

    # ------------------------------------------------------------------
    # Guarded transitions
    # ------------------------------------------------------------------

    @staticmethod
    async def _apply_transition(
        db: AsyncSession,
        session: PostSession,
        user_id: str,
        new_status: str,
        new_step: str | None = None,
        reason: str | None = None,
    ) -> PostSession:
        """Validate and apply a status change, recording history.

        Raises:
            InvalidStateError: If the transition is not allowed.
        """
        old_status = session.status
        allowed = ALLOWED_TRANSITIONS.get(old_status, [])
        if new_status not in allowed:
            logger.warning(
                "Rejected transition %s -> %s for session %s",
                old_status,
                new_status,
                session.id,
            )
            raise InvalidStateError(
                f"Cannot transition from '{old_status}' to '{new_status}'. "
                f"Allowed transitions: {', '.join(allowed) if allowed else 'none (terminal state)'}",
                details={"session_id": session.id, "status": old_status},
            )

        old_step = session.current_step
        step = new_step or _next_step(old_step, new_status)
        db.add(
            SessionStatusHistory(
                session_id=session.id,
                old_status=old_status,
                new_status=new_status,
                old_step=old_step,
                new_step=step,
                changed_by=user_id,
                reason=reason,
            )
        )
        session.status = new_status
        session.current_step = step
        logger.info(
            "Session %s: %s/%s -> %s/%s",
            session.id,
            old_status,
            old_step,
            new_status,
            step,
        )
        await db.flush()
        return session

    @staticmethod
    async def transition_to_generating(
        db: AsyncSession, user_id: str, session_id: int, reason: str | None = None
    ) -> PostSession:
        """Move a session into ``generating`` (from ideation, reviewing or selecting)."""
        session = await get_owned_session(db, session_id, user_id)
        return await SessionService._apply_transition(
            db, session, user_id, STATUS_GENERATING, reason=reason
        )

    @staticmethod
    async def transition_to_reviewing(
        db: AsyncSession, user_id: str, session_id: int, reason: str | None = None
    ) -> PostSession:
        session = await get_owned_session(db, session_id, user_id)
        return await SessionService._apply_transition(
            db, session, user_id, STATUS_REVIEWING, reason=reason
        )

    @staticmethod
    async def transition_to_asset_pending(
        db: AsyncSession, user_id: str, session_id: int, reason: str | None = None
    ) -> PostSession:
        """Enter the asset sub-step without changing ``status``.

        Raises:
            InvalidStateError: If the session does not need an asset, is not
                generating or reviewing, or is already waiting for an asset.
        """
        session = await get_owned_session(db, session_id, user_id)
        if not session.needs_asset:
            raise InvalidStateError(
                "Session does not require an asset",
                details={"session_id": session.id},
            )
        if session.status not in ASSET_STEP_STATUSES:
            raise InvalidStateError(
                f"Cannot enter asset step from status '{session.status}'",
                details={"session_id": session.id, "status": session.status},
            )
        if session.current_step == STEP_ASSET_PENDING:
            raise InvalidStateError(
                "Session is already waiting for an asset",
                details={"session_id": session.id},
            )

        db.add(
            SessionStatusHistory(
                session_id=session.id,
                old_status=session.status,
                new_status=session.status,
                old_step=session.current_step,
                new_step=STEP_ASSET_PENDING,
                changed_by=user_id,
                reason=reason,
            )
        )
        session.current_step = STEP_ASSET_PENDING
        await db.flush()
        logger.info("Session %s waiting for asset", session.id)
        return session

    @staticmethod
    async def transition_to_selecting(
        db: AsyncSession, user_id: str, session_id: int, reason: str | None = None
    ) -> PostSession:
        session = await get_owned_session(db, session_id, user_id)
        return await SessionService._apply_transition(
            db, session, user_id, STATUS_SELECTING, reason=reason
        )

    @staticmethod
    async def transition_to_completed(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        version: ContentVersion,
        reason: str | None = None,
    ) -> PostSession:
        """Finalize a session around its selected version.

        Sets ``is_completed``, ``selected_version_id`` and ``final_content``
        and bumps the parent project's ``total_posts``.
        """
        session = await get_owned_session(db, session_id, user_id)
        await SessionService._apply_transition(
            db, session, user_id, STATUS_COMPLETED, reason=reason
        )
        session.is_completed = True
        session.selected_version_id = version.id
        session.final_content = version.content
        await db.execute(
            update(Project)
            .where(Project.id == session.project_id)
            .values(total_posts=Project.total_posts + 1)
            .execution_options(synchronize_session="fetch")
        )
        await db.flush()
        return session
