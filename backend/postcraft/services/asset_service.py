"""Business logic for generated visual assets."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import AuthorizationError, InvalidStateError, parse_input, require_user
from postcraft.models.asset_models import AssetCreate
from postcraft.models.choices import STEP_ASSET_PENDING
from postcraft.models.db.asset import GeneratedAsset
from postcraft.models.db.session import SessionStatusHistory
from postcraft.services.access_control import get_owned_session

logger = logging.getLogger(__name__)


class AssetService:
    """Service layer for session assets."""

    @staticmethod
    async def record_asset(
        db: AsyncSession,
        user_id: str,
        session_id: int,
        data: AssetCreate | dict[str, Any],
    ) -> GeneratedAsset:
        """Record a generated asset and flag the session as having one.

        Args:
            db: Async database session.
            user_id: Acting user.
            session_id: Owning session.
            data: Asset metadata.

        Returns:
            The stored GeneratedAsset.

        Raises:
            ValidationError: If the metadata is invalid.
            AuthorizationError: If the session is missing or not owned.
            InvalidStateError: If the session does not need an asset.
        """
        user_id = require_user(user_id)
        payload = parse_input(AssetCreate, data)
        session = await get_owned_session(
            db, session_id, user_id, missing=AuthorizationError, for_update=True
        )
        if not session.needs_asset:
            raise InvalidStateError(
                "Session does not require an asset",
                details={"session_id": session.id},
            )

        asset = GeneratedAsset(session_id=session.id, **payload.model_dump())
        db.add(asset)
        session.asset_generated = True

        # Leave the asset sub-step once an asset exists
        if session.current_step == STEP_ASSET_PENDING:
            db.add(
                SessionStatusHistory(
                    session_id=session.id,
                    old_status=session.status,
                    new_status=session.status,
                    old_step=STEP_ASSET_PENDING,
                    new_step=session.status,
                    changed_by=user_id,
                    reason="Asset recorded",
                )
            )
            session.current_step = session.status

        await db.flush()
        await db.refresh(asset)
        logger.info(
            "Recorded %s asset %s for session %s", asset.asset_type, asset.id, session.id
        )
        return asset

    @staticmethod
    async def list_assets(
        db: AsyncSession, user_id: str, session_id: int
    ) -> list[GeneratedAsset]:
        """Return a session's assets, oldest first.

        Raises:
            AuthorizationError: If the session is missing or not owned.
        """
        session = await get_owned_session(
            db, session_id, user_id, missing=AuthorizationError
        )
        result = await db.execute(
            select(GeneratedAsset)
            .where(GeneratedAsset.session_id == session.id)
            .order_by(GeneratedAsset.created_at, GeneratedAsset.id)
        )
        return list(result.scalars().all())
