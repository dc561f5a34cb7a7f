"""Content version recording and selection.

Versions are append-only.  Selection swaps the ``is_selected`` flag with
two conditional UPDATEs inside the caller's transaction (clear first, then
set) so the partial unique index never sees two selected rows, and then
completes the session.
"""

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    OperationFailedError,
    ValidationError,
    parse_input,
    require_user,
)
from postcraft.models.choices import (
    STATUS_COMPLETED,
    STATUS_GENERATING,
    STATUS_IDEATION,
    STATUS_REVIEWING,
    STATUS_SELECTING,
)
from postcraft.models.db.version import ContentVersion
from postcraft.models.version_models import (
    SelectionResult,
    VersionBatchCreate,
    VersionCreate,
)
from postcraft.services.access_control import get_owned_session
from postcraft.services.session_service import SessionService

logger = logging.getLogger(__name__)

SELECTABLE_STATUSES = {STATUS_REVIEWING, STATUS_SELECTING, STATUS_COMPLETED}

WORDS_PER_MINUTE = 200


def estimate_read_time(content: str) -> int:
    """Estimated read time in seconds, at least one second."""
    words = len(content.split())
    return max(1, round(words * 60 / WORDS_PER_MINUTE))


class VersionService:
    """Service layer for content versions."""

    # ------------------------------------------------------------------
    # record_version / record_versions
    # ------------------------------------------------------------------

    @staticmethod
    async def record_version(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        data: VersionCreate | dict[str, Any],
    ) -> ContentVersion:
        """Append one candidate version to a session.

        Raises:
            ValidationError: If the payload is invalid.
            NotFoundError: If the session is absent or foreign.
            InvalidStateError: If the session is already completed.
        """
        user_id = require_user(user_id)
        payload = parse_input(VersionCreate, data)
        versions = await VersionService._append(db, user_id, session_id, [payload])
        return versions[0]

    @staticmethod
    async def record_versions(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        data: VersionBatchCreate | dict[str, Any] | list,
    ) -> list[ContentVersion]:
        """Append a batch of 1..10 versions in one transaction."""
        user_id = require_user(user_id)
        if isinstance(data, list):
            data = {"versions": data}
        batch = parse_input(VersionBatchCreate, data)
        return await VersionService._append(db, user_id, session_id, batch.versions)

    @staticmethod
    async def _append(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        payloads: list[VersionCreate],
    ) -> list[ContentVersion]:
        session = await get_owned_session(db, session_id, user_id, for_update=True)
        if session.status == STATUS_COMPLETED:
            raise InvalidStateError(
                "Cannot add versions to a completed session",
                details={"session_id": session.id},
            )

        existing_result = await db.execute(
            select(ContentVersion.version_number).where(
                ContentVersion.session_id == session.id
            )
        )
        used = set(existing_result.scalars().all())

        clashes = [
            f"versions.{index}.version_number"
            for index, payload in enumerate(payloads)
            if payload.version_number is not None and payload.version_number in used
        ]
        if clashes:
            raise ValidationError(
                "Version number already exists for this session", fields=clashes
            )

        if session.status == STATUS_IDEATION:
            await SessionService.transition_to_generating(
                db, user_id, session.id, reason="First version recorded"
            )

        used.update(p.version_number for p in payloads if p.version_number is not None)
        next_number = max(used | {session.total_versions or 0}) + 1

        created: list[ContentVersion] = []
        for payload in payloads:
            number = payload.version_number
            if number is None:
                number = next_number
                next_number += 1
            fields = payload.model_dump(exclude={"version_number"})
            if fields.get("content_length") is None:
                fields["content_length"] = len(payload.content)
            if fields.get("estimated_read_time") is None:
                fields["estimated_read_time"] = estimate_read_time(payload.content)
            version = ContentVersion(
                session_id=session.id,
                version_number=number,
                is_selected=False,
                **fields,
            )
            db.add(version)
            created.append(version)

        session.total_versions = (session.total_versions or 0) + len(created)
        await db.flush()

        if session.status == STATUS_GENERATING:
            await SessionService.transition_to_reviewing(
                db, user_id, session.id, reason=f"{len(created)} version(s) recorded"
            )

        for version in created:
            await db.refresh(version)
        logger.info("Recorded %d version(s) for session %s", len(created), session.id)
        return created

    # ------------------------------------------------------------------
    # list_versions
    # ------------------------------------------------------------------

    @staticmethod
    async def list_versions(
        db: AsyncSession, user_id: str, session_id: int
    ) -> list[ContentVersion]:
        session = await get_owned_session(db, session_id, user_id)
        result = await db.execute(
            select(ContentVersion)
            .where(ContentVersion.session_id == session.id)
            .order_by(ContentVersion.version_number)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_selected(db: AsyncSession, session_id: int) -> int:
        result = await db.execute(
            select(func.count(ContentVersion.id)).where(
                ContentVersion.session_id == session_id,
                ContentVersion.is_selected.is_(True),
            )
        )
        return result.scalar() or 0

    # ------------------------------------------------------------------
    # select_version
    # ------------------------------------------------------------------

    @staticmethod
    async def select_version(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        version_id: int,
    ) -> SelectionResult:
        """Mark one version as the session's output and complete the session.

        Re-selecting the version that is already selected on a completed
        session is a no-op that reports ``changed=False``.  Selecting another
        version on a completed session moves the selection.

        Args:
            db: Async database session (the caller's transaction).
            user_id: Acting user.
            session_id: Session whose version is being chosen.
            version_id: Version to select.

        Returns:
            SelectionResult describing the outcome.

        Raises:
            AuthorizationError: If the session is missing or not owned.
            NotFoundError: If the version does not belong to the session.
            InvalidStateError: If the session has not reached review.
            OperationFailedError: If the selection swap could not be applied.
        """
        user_id = require_user(user_id)
        session = await get_owned_session(
            db, session_id, user_id, missing=AuthorizationError, for_update=True
        )

        result = await db.execute(
            select(ContentVersion).where(
                ContentVersion.id == version_id,
                ContentVersion.session_id == session.id,
            )
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFoundError(
                "Version not found in this session",
                details={"session_id": session.id, "version_id": version_id},
            )

        if version.is_selected and session.is_completed:
            return SelectionResult(
                success=True, session_id=session.id, version_id=version.id, changed=False
            )

        if session.status not in SELECTABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot select a version while session is '{session.status}'",
                details={"session_id": session.id, "status": session.status},
            )

        try:
            await db.execute(
                update(ContentVersion)
                .where(
                    ContentVersion.session_id == session.id,
                    ContentVersion.id != version.id,
                    ContentVersion.is_selected.is_(True),
                )
                .values(is_selected=False)
                .execution_options(synchronize_session="fetch")
            )
            set_result = await db.execute(
                update(ContentVersion)
                .where(
                    ContentVersion.id == version.id,
                    ContentVersion.session_id == session.id,
                )
                .values(is_selected=True)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Selection swap failed for session %s: %s", session_id, e)
            await db.rollback()
            raise OperationFailedError(
                "Could not apply version selection",
                details={"session_id": session_id, "version_id": version_id},
            ) from e

        if set_result.rowcount != 1:
            logger.error(
                "Selection target %s vanished from session %s", version_id, session_id
            )
            await db.rollback()
            raise OperationFailedError(
                "Could not apply version selection",
                details={"session_id": session_id, "version_id": version_id},
            )

        if session.status == STATUS_COMPLETED:
            session.selected_version_id = version.id
            session.final_content = version.content
            await db.flush()
            logger.info(
                "Session %s selection moved to version %s", session.id, version.id
            )
        else:
            await SessionService.transition_to_completed(
                db,
                user_id,
                session.id,
                version,
                reason=f"Version {version.version_number} selected",
            )

        return SelectionResult(
            success=True, session_id=session.id, version_id=version.id, changed=True
        )
