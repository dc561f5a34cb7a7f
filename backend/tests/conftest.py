"""
Shared pytest fixtures for the postcraft test suite.

Each test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema created from the ORM metadata, plus async factory fixtures that go
through the real service layer.

Usage:
    cd backend && pytest tests/ -v
"""

import os
import sys
from typing import Any, Dict

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from postcraft.models.db import Base  # noqa: E402
from postcraft.services.project_service import ProjectService  # noqa: E402
from postcraft.services.session_service import SessionService  # noqa: E402
from postcraft.services.version_service import VersionService  # noqa: E402

USER_ID = "user-alice"
OTHER_USER_ID = "user-bob"


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================================
# FACTORIES
# ============================================================================

def project_payload(name: str = "Launch Week", **overrides) -> Dict[str, Any]:
    """Factory function for project input."""
    data = {
        "name": name,
        "description": "Posts for the spring launch",
        "tone": "professional",
        "content_types": ["text-post", "carousel"],
        "key_topics": ["product", "engineering"],
        "target_audience": "Engineering managers",
    }
    data.update(overrides)
    return data


def session_payload(**overrides) -> Dict[str, Any]:
    """Factory function for session input."""
    data = {
        "post_idea": "Why we rewrote our billing service",
        "additional_context": "Focus on the migration, not the outage",
        "target_content_type": "text-post",
        "selected_model": "gpt-4o-mini",
    }
    data.update(overrides)
    return data


def version_payload(content: str = "Draft post body", **overrides) -> Dict[str, Any]:
    """Factory function for version input."""
    data = {
        "content": content,
        "model_used": "gpt-4o-mini",
        "hashtags": ["#engineering"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_project(db):
    async def _make(user_id: str = USER_ID, **overrides):
        return await ProjectService.create_project(db, user_id, project_payload(**overrides))

    return _make


@pytest.fixture
def make_session(db, make_project):
    async def _make(project=None, user_id: str = USER_ID, **overrides):
        if project is None:
            project = await make_project(user_id=user_id)
        return await SessionService.create_session(
            db, user_id, project.id, session_payload(**overrides)
        )

    return _make


@pytest.fixture
def make_reviewing_session(db, make_session):
    """Session with ``count`` recorded versions, left in ``reviewing``."""

    async def _make(count: int = 3, user_id: str = USER_ID, **overrides):
        session = await make_session(user_id=user_id, **overrides)
        versions = await VersionService.record_versions(
            db,
            user_id,
            session.id,
            [version_payload(f"Variation {i + 1}") for i in range(count)],
        )
        return session, versions

    return _make
