"""Business logic for user-owned projects."""

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import InvalidStateError, ValidationError, parse_input, require_user
from postcraft.models.choices import CONTENT_TONES
from postcraft.models.db.project import Project
from postcraft.models.db.session import PostSession
from postcraft.models.project_models import ProjectCreate, ProjectUpdate
from postcraft.openai_provider import get_chat_model
from postcraft.services.access_control import get_owned_project

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Non-nullable columns; an explicit null in an update leaves them unchanged
_REQUIRED_FIELDS = frozenset(
    {
        "name",
        "tone",
        "is_active",
        "default_model",
        "content_types",
        "key_topics",
        "content_pillars",
    }
)


class ProjectService:
    """Service layer for project operations."""

    @staticmethod
    async def create_project(
        db: AsyncSession, user_id: str, data: ProjectCreate | dict[str, Any]
    ) -> Project:
        """Create a project owned by *user_id*.

        Raises:
            AuthorizationError: If *user_id* is missing.
            ValidationError: If the payload is invalid.
        """
        user_id = require_user(user_id)
        payload = parse_input(ProjectCreate, data)

        fields = payload.model_dump()
        if not fields.get("default_model"):
            fields["default_model"] = get_chat_model()

        project = Project(user_id=user_id, **fields)
        db.add(project)
        await db.flush()
        await db.refresh(project)
        logger.info("Created project %s for user %s", project.id, user_id)
        return project

    @staticmethod
    async def list_projects(
        db: AsyncSession,
        user_id: str,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        tone: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[Project], int]:
        """List the user's projects, newest first, with a total count.

        Returns:
            Tuple of (projects page, total matching rows).

        Raises:
            ValidationError: If ``limit``/``offset``/``tone`` are out of range.
        """
        user_id = require_user(user_id)
        bad_fields = []
        if not 1 <= limit <= MAX_PAGE_SIZE:
            bad_fields.append("limit")
        if offset < 0:
            bad_fields.append("offset")
        if tone is not None and tone not in CONTENT_TONES:
            bad_fields.append("tone")
        if bad_fields:
            raise ValidationError(
                f"Invalid input: {', '.join(bad_fields)}", fields=bad_fields
            )

        filters = [Project.user_id == user_id]
        if tone is not None:
            filters.append(Project.tone == tone)
        if is_active is not None:
            filters.append(Project.is_active == is_active)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(Project.name.ilike(pattern), Project.description.ilike(pattern))
            )

        total_result = await db.execute(select(func.count(Project.id)).where(*filters))
        total = total_result.scalar() or 0

        result = await db.execute(
            select(Project)
            .where(*filters)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def get_project(db: AsyncSession, user_id: str, project_id: int) -> Project:
        return await get_owned_project(db, project_id, user_id)

    @staticmethod
    async def update_project(
        db: AsyncSession,
        user_id: str,
        project_id: int,
        data: ProjectUpdate | dict[str, Any],
    ) -> Project:
        """Apply a partial update to a project the user owns."""
        user_id = require_user(user_id)
        payload = parse_input(ProjectUpdate, data)
        project = await get_owned_project(db, project_id, user_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            setattr(project, field, value)

        await db.flush()
        await db.refresh(project)
        return project

    @staticmethod
    async def delete_project(db: AsyncSession, user_id: str, project_id: int) -> None:
        """Delete a project that no longer has sessions.

        Raises:
            NotFoundError: If the project is absent or foreign.
            InvalidStateError: If sessions still reference the project.
        """
        project = await get_owned_project(db, project_id, user_id, for_update=True)

        count_result = await db.execute(
            select(func.count(PostSession.id)).where(PostSession.project_id == project.id)
        )
        session_count = count_result.scalar() or 0
        if session_count:
            raise InvalidStateError(
                "Project still has sessions; delete them first",
                details={"project_id": project.id, "sessions": session_count},
            )

        await db.delete(project)
        await db.flush()
        logger.info("Deleted project %s", project_id)
