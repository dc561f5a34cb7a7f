"""Shared access-control helpers for project- and session-scoped resources.

Ownership is always part of the query predicate, so a resource owned by
someone else is indistinguishable from one that does not exist.  Callers
choose which error kind that outcome maps to.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import NotFoundError, PostcraftError, require_user
from postcraft.models.db.project import Project
from postcraft.models.db.session import PostSession


async def get_owned_project(
    db: AsyncSession,
    project_id: int,
    user_id: str | None,
    for_update: bool = False,
) -> Project:
    """Return the project if *user_id* owns it.

    Raises:
        AuthorizationError: If *user_id* is missing.
        NotFoundError: If the project is absent or owned by another user.
    """
    user_id = require_user(user_id)
    query = select(Project).where(Project.id == project_id, Project.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found", details={"project_id": project_id})
    return project


async def get_owned_session(
    db: AsyncSession,
    session_id: int,
    user_id: str | None,
    missing: type[PostcraftError] = NotFoundError,
    for_update: bool = False,
) -> PostSession:
    """Return the session if *user_id* owns it.

    Uses the denormalized ``user_id`` on the session row instead of joining
    through the project.

    Args:
        db: Async database session.
        session_id: Id of the session.
        user_id: Acting user.
        missing: Error class raised when the session is absent or foreign.
        for_update: Lock the row for the rest of the transaction.

    Raises:
        AuthorizationError: If *user_id* is missing.
        PostcraftError: ``missing`` when the session is absent or foreign.
    """
    user_id = require_user(user_id)
    query = select(PostSession).where(
        PostSession.id == session_id, PostSession.user_id == user_id
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    session = result.scalar_one_or_none()
    if session is None:
        raise missing("Session not found", details={"session_id": session_id})
    return session
