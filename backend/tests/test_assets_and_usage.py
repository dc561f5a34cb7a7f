"""
Tests for generated assets and the usage ledger.

Covers:
- Recording assets: ownership, needs_asset gate, asset_pending clearing
- Usage ledger: append, newest-first listing, limit bounds, summaries
- Ledger write failures surface as StorageError

Usage:
    cd backend && pytest tests/test_assets_and_usage.py -v
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import OTHER_USER_ID, USER_ID  # noqa: E402
from postcraft.errors import (  # noqa: E402
    AuthorizationError,
    InvalidStateError,
    StorageError,
    ValidationError,
)
from postcraft.services.asset_service import AssetService  # noqa: E402
from postcraft.services.session_service import SessionService  # noqa: E402
from postcraft.services.usage_service import UsageService  # noqa: E402


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================

def make_asset_data(**overrides) -> Dict[str, Any]:
    """Factory function to create asset metadata."""
    data = {
        "asset_type": "carousel",
        "file_name": "slide-1.png",
        "file_url": "https://cdn.example.com/assets/slide-1.png",
        "file_size": 204800,
        "prompt": "Five slides summarizing the billing migration",
        "model": "dall-e-3",
        "style": "professional",
        "dimensions": "1024x1024",
        "generation_cost": Decimal("0.04"),
    }
    data.update(overrides)
    return data


def make_usage_entry(user_id: str = USER_ID, **overrides) -> Dict[str, Any]:
    """Factory function to create a usage ledger entry."""
    data = {
        "user_id": user_id,
        "action_type": "content_generation",
        "model_used": "gpt-4o-mini",
        "tokens_used": 500,
        "api_cost": Decimal("0.0002"),
        "processing_time": 1.25,
    }
    data.update(overrides)
    return data


# ============================================================================
# ASSETS
# ============================================================================

class TestRecordAsset:

    async def test_records_asset_and_flags_session(self, db, make_session):
        session = await make_session(target_content_type="carousel")

        asset = await AssetService.record_asset(db, USER_ID, session.id, make_asset_data())

        assert asset.id is not None
        assert asset.session_id == session.id
        assert asset.file_url == "https://cdn.example.com/assets/slide-1.png"
        assert session.asset_generated is True

    async def test_clears_asset_pending_step(self, db, make_session):
        session = await make_session(target_content_type="story")
        await SessionService.transition_to_generating(db, USER_ID, session.id)
        await SessionService.transition_to_asset_pending(db, USER_ID, session.id)

        await AssetService.record_asset(
            db, USER_ID, session.id, make_asset_data(asset_type="image")
        )

        assert session.status == "generating"
        assert session.current_step == "generating"
        history = await SessionService.list_status_history(db, USER_ID, session.id)
        assert history[-1].old_step == "asset_pending"
        assert history[-1].reason == "Asset recorded"

    async def test_session_without_asset_step_rejected(self, db, make_session):
        session = await make_session(target_content_type="text-post")
        with pytest.raises(InvalidStateError):
            await AssetService.record_asset(db, USER_ID, session.id, make_asset_data())

    async def test_foreign_session_is_authorization_error(self, db, make_session):
        session = await make_session(target_content_type="carousel")
        with pytest.raises(AuthorizationError):
            await AssetService.record_asset(
                db, OTHER_USER_ID, session.id, make_asset_data()
            )

    async def test_missing_session_is_authorization_error(self, db):
        with pytest.raises(AuthorizationError):
            await AssetService.record_asset(db, USER_ID, 4242, make_asset_data())

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"file_name": " "}, "file_name"),
            ({"file_url": "not-a-url"}, "file_url"),
            ({"file_url": "ftp://cdn.example.com/a.png"}, "file_url"),
            ({"asset_type": "hologram"}, "asset_type"),
            ({"prompt": ""}, "prompt"),
        ],
    )
    async def test_invalid_metadata_rejected(self, db, make_session, overrides, field):
        session = await make_session(target_content_type="carousel")
        with pytest.raises(ValidationError) as exc_info:
            await AssetService.record_asset(
                db, USER_ID, session.id, make_asset_data(**overrides)
            )
        assert field in exc_info.value.fields

    async def test_assets_listed_oldest_first(self, db, make_session):
        session = await make_session(target_content_type="carousel")
        first = await AssetService.record_asset(db, USER_ID, session.id, make_asset_data())
        second = await AssetService.record_asset(
            db, USER_ID, session.id, make_asset_data(file_name="slide-2.png")
        )

        assets = await AssetService.list_assets(db, USER_ID, session.id)
        assert [a.id for a in assets] == [first.id, second.id]

    async def test_second_asset_keeps_session_flagged(self, db, make_session):
        session = await make_session(target_content_type="story")
        await AssetService.record_asset(db, USER_ID, session.id, make_asset_data())
        assert session.asset_generated is True

        await AssetService.record_asset(
            db, USER_ID, session.id, make_asset_data(file_name="frame-2.png")
        )

        assert session.asset_generated is True
        assert len(await AssetService.list_assets(db, USER_ID, session.id)) == 2


# ============================================================================
# USAGE LEDGER
# ============================================================================

class TestRecordUsage:

    async def test_appends_entry(self, db):
        entry = await UsageService.record_usage(db, make_usage_entry())

        assert entry.id is not None
        assert entry.is_successful is True
        assert entry.retry_count == 0

    async def test_failed_invocation_is_recorded(self, db):
        entry = await UsageService.record_usage(
            db,
            make_usage_entry(is_successful=False, error_message="rate limited", tokens_used=None),
        )
        assert entry.is_successful is False
        assert entry.error_message == "rate limited"

    async def test_entry_without_user_rejected(self, db):
        with pytest.raises(AuthorizationError):
            await UsageService.record_usage(db, make_usage_entry(user_id=""))

    async def test_unknown_action_rejected(self, db):
        with pytest.raises(ValidationError) as exc_info:
            await UsageService.record_usage(db, make_usage_entry(action_type="mining"))
        assert exc_info.value.fields == ["action_type"]

    async def test_storage_failure_is_surfaced(self, db):
        failure = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(db, "flush", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageError) as exc_info:
                await UsageService.record_usage(db, make_usage_entry())

        assert exc_info.value.kind == "storage_error"
        assert exc_info.value.status_code == 503


class TestListRecentUsage:

    async def test_newest_first_and_scoped_to_user(self, db):
        first = await UsageService.record_usage(db, make_usage_entry())
        second = await UsageService.record_usage(
            db, make_usage_entry(action_type="content_regeneration")
        )
        await UsageService.record_usage(db, make_usage_entry(user_id=OTHER_USER_ID))

        entries = await UsageService.list_recent_usage(db, USER_ID, limit=10)
        assert [e.id for e in entries] == [second.id, first.id]

    async def test_limit_caps_result(self, db):
        for _ in range(5):
            await UsageService.record_usage(db, make_usage_entry())
        entries = await UsageService.list_recent_usage(db, USER_ID, limit=2)
        assert len(entries) == 2

    @pytest.mark.parametrize("limit", [1, 100])
    async def test_limit_bounds_accepted(self, db, limit):
        assert await UsageService.list_recent_usage(db, USER_ID, limit=limit) == []

    @pytest.mark.parametrize("limit", [0, 101, -5])
    async def test_limit_out_of_range_rejected(self, db, limit):
        with pytest.raises(ValidationError) as exc_info:
            await UsageService.list_recent_usage(db, USER_ID, limit=limit)
        assert exc_info.value.fields == ["limit"]


class TestSummarizeUsage:

    async def test_groups_by_action(self, db):
        await UsageService.record_usage(db, make_usage_entry(tokens_used=100))
        await UsageService.record_usage(db, make_usage_entry(tokens_used=200))
        await UsageService.record_usage(
            db,
            make_usage_entry(
                action_type="asset_creation",
                model_used="dall-e-3",
                tokens_used=None,
                api_cost=Decimal("0.04"),
                is_successful=False,
            ),
        )

        summary = await UsageService.summarize_usage(db, USER_ID)

        assert summary.total_calls == 3
        assert summary.failed_calls == 1
        assert summary.total_tokens == 300
        assert summary.by_action["content_generation"].calls == 2
        assert summary.by_action["asset_creation"].failures == 1
        assert summary.total_cost == pytest.approx(0.0404)

    async def test_since_filters_old_entries(self, db):
        await UsageService.record_usage(db, make_usage_entry())
        future = datetime.now(timezone.utc) + timedelta(days=1)

        summary = await UsageService.summarize_usage(db, USER_ID, since=future)
        assert summary.total_calls == 0
        assert summary.by_action == {}
