"""Projects router.

Provides CRUD endpoints for projects and the project-scoped session
collection (create and list).
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.deps import commit_or_raise, get_current_user_id, get_db
from postcraft.models.choices import ContentTone
from postcraft.models.project_models import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from postcraft.models.session_models import (
    SessionCreate,
    SessionListResponse,
    SessionResponse,
)
from postcraft.services.project_service import ProjectService
from postcraft.services.session_service import SessionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["projects"])


# ---------------------------------------------------------------------------
# POST /projects
# ---------------------------------------------------------------------------


@router.post(
    "/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED
)
async def create_project(
    body: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create a project owned by the authenticated user."""
    project = await ProjectService.create_project(db, user_id, body)
    await commit_or_raise(db, "create project")
    return ProjectResponse.model_validate(project)


# ---------------------------------------------------------------------------
# GET /projects
# ---------------------------------------------------------------------------


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    tone: ContentTone | None = Query(None, description="Filter by tone"),
    is_active: bool | None = Query(None, description="Filter by active flag"),
    search: str | None = Query(None, max_length=200, description="Name/description search"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List the authenticated user's projects, newest first.

    Args:
        limit: Maximum number of results (default 20, max 100).
        offset: Number of rows to skip.
        tone: Optional tone filter.
        is_active: Optional active-flag filter.
        search: Optional case-insensitive substring match.
        db: Async database session (injected).
        user_id: Authenticated user (injected).

    Returns:
        ProjectListResponse with projects and total count.
    """
    projects, total = await ProjectService.list_projects(
        db,
        user_id,
        limit=limit,
        offset=offset,
        tone=tone,
        is_active=is_active,
        search=search,
    )
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
    )


# ---------------------------------------------------------------------------
# GET / PATCH / DELETE /projects/{project_id}
# ---------------------------------------------------------------------------


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = await ProjectService.get_project(db, user_id, project_id)
    return ProjectResponse.model_validate(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = await ProjectService.update_project(db, user_id, project_id, body)
    await commit_or_raise(db, "update project")
    return ProjectResponse.model_validate(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Delete a project. Refused with 409 while it still has sessions."""
    await ProjectService.delete_project(db, user_id, project_id)
    await commit_or_raise(db, "delete project")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# POST / GET /projects/{project_id}/sessions
# ---------------------------------------------------------------------------


@router.post(
    "/projects/{project_id}/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    project_id: int,
    body: SessionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Start a session in ``ideation`` under the given project."""
    session = await SessionService.create_session(db, user_id, project_id, body)
    await commit_or_raise(db, "create session")
    return SessionResponse.model_validate(session)


@router.get("/projects/{project_id}/sessions", response_model=SessionListResponse)
async def list_sessions(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    sessions = await SessionService.list_sessions(db, user_id, project_id)
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(s) for s in sessions],
        total=len(sessions),
    )
