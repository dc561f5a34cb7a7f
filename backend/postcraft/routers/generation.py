"""Generation router: content variations and visual assets via OpenAI."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.deps import (
    commit_or_raise,
    get_current_user_id,
    get_db,
    get_generation_service,
)
from postcraft.generation_service import GenerationService
from postcraft.models.generation_models import (
    GenerateAssetRequest,
    GenerateAssetResponse,
    GenerateContentRequest,
    GenerateContentResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/generate", tags=["generation"])


@router.post(
    "/content",
    response_model=GenerateContentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_content(
    body: GenerateContentRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """Generate 1-6 content variations for a session.

    Each variation is recorded as a version; each model call is recorded in
    the usage ledger. Responds 502 when every call failed.
    """
    response = await service.generate_content(db, user_id, body)
    await commit_or_raise(db, "generate content")
    return response


@router.post(
    "/assets",
    response_model=GenerateAssetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_asset(
    body: GenerateAssetRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    response = await service.generate_asset(db, user_id, body)
    await commit_or_raise(db, "generate asset")
    return response
