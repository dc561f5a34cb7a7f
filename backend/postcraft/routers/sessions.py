"""Sessions router.

Session detail and editing, the status history, the content version set
(record, list, select) and the session's generated assets.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.deps import commit_or_raise, get_current_user_id, get_db
from postcraft.models.asset_models import AssetCreate, AssetResponse
from postcraft.models.session_models import (
    SessionResponse,
    SessionTransitionRequest,
    SessionUpdate,
    StatusHistoryResponse,
)
from postcraft.models.version_models import (
    SelectionResult,
    VersionBatchCreate,
    VersionResponse,
)
from postcraft.services.asset_service import AssetService
from postcraft.services.session_service import SessionService
from postcraft.services.version_service import VersionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["sessions"])


# ---------------------------------------------------------------------------
# GET / PATCH / DELETE /sessions/{session_id}
# ---------------------------------------------------------------------------


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    session = await SessionService.get_session(db, user_id, session_id)
    return SessionResponse.model_validate(session)


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: int,
    body: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Edit the idea, context, content type, model or prompt of an open session."""
    session = await SessionService.update_session(db, user_id, session_id, body)
    await commit_or_raise(db, "update session")
    return SessionResponse.model_validate(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await SessionService.delete_session(db, user_id, session_id)
    await commit_or_raise(db, "delete session")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/sessions/{session_id}/history", response_model=list[StatusHistoryResponse]
)
async def get_session_history(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    history = await SessionService.list_status_history(db, user_id, session_id)
    return [StatusHistoryResponse.model_validate(h) for h in history]


@router.post("/sessions/{session_id}/selecting", response_model=SessionResponse)
async def start_selecting(
    session_id: int,
    body: SessionTransitionRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Mark a reviewed session as being chosen from (reviewing -> selecting)."""
    session = await SessionService.transition_to_selecting(
        db, user_id, session_id, reason=body.reason if body else None
    )
    await commit_or_raise(db, "start selecting")
    return SessionResponse.model_validate(session)


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


@router.post(
    "/sessions/{session_id}/versions",
    response_model=list[VersionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_versions(
    session_id: int,
    body: VersionBatchCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Record a batch of 1-10 candidate versions for a session."""
    versions = await VersionService.record_versions(db, user_id, session_id, body)
    await commit_or_raise(db, "record versions")
    return [VersionResponse.model_validate(v) for v in versions]


@router.get("/sessions/{session_id}/versions", response_model=list[VersionResponse])
async def list_versions(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    versions = await VersionService.list_versions(db, user_id, session_id)
    return [VersionResponse.model_validate(v) for v in versions]


@router.post(
    "/sessions/{session_id}/versions/{version_id}/select",
    response_model=SelectionResult,
)
async def select_version(
    session_id: int,
    version_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Select a version and complete the session.

    Returns an explicit SelectionResult; ``changed`` is false for an
    idempotent re-selection.
    """
    result = await VersionService.select_version(db, user_id, session_id, version_id)
    await commit_or_raise(db, "select version")
    return result


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


@router.post(
    "/sessions/{session_id}/assets",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_asset(
    session_id: int,
    body: AssetCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    asset = await AssetService.record_asset(db, user_id, session_id, body)
    await commit_or_raise(db, "record asset")
    return AssetResponse.model_validate(asset)


@router.get("/sessions/{session_id}/assets", response_model=list[AssetResponse])
async def list_assets(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    assets = await AssetService.list_assets(db, user_id, session_id)
    return [AssetResponse.model_validate(a) for a in assets]
