"""
Tests for projects and the pipeline statistics projection.

Usage:
    cd backend && pytest tests/test_projects_and_stats.py -v
"""

import os
import sys
from decimal import Decimal

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import OTHER_USER_ID, USER_ID, project_payload  # noqa: E402
from postcraft.errors import (  # noqa: E402
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from postcraft.openai_provider import get_chat_model  # noqa: E402
from postcraft.services.project_service import ProjectService  # noqa: E402
from postcraft.services.session_service import SessionService  # noqa: E402
from postcraft.services.stats_service import StatsService  # noqa: E402
from postcraft.services.usage_service import UsageService  # noqa: E402
from postcraft.services.version_service import VersionService  # noqa: E402


# ============================================================================
# PROJECTS
# ============================================================================

class TestCreateProject:

    async def test_defaults(self, db):
        project = await ProjectService.create_project(db, USER_ID, {"name": "  Q3 Posts "})

        assert project.name == "Q3 Posts"
        assert project.tone == "professional"
        assert project.content_types == ["text-post"]
        assert project.default_model == get_chat_model()
        assert project.is_active is True
        assert project.total_sessions == 0
        assert project.total_posts == 0

    async def test_unknown_content_type_rejected(self, db):
        with pytest.raises(ValidationError) as exc_info:
            await ProjectService.create_project(
                db, USER_ID, project_payload(content_types=["text-post", "hologram"])
            )
        assert "content_types" in exc_info.value.fields

    async def test_unknown_tone_rejected(self, db):
        with pytest.raises(ValidationError):
            await ProjectService.create_project(db, USER_ID, project_payload(tone="angry"))

    async def test_requires_user(self, db):
        with pytest.raises(AuthorizationError):
            await ProjectService.create_project(db, None, project_payload())


class TestListProjects:

    async def test_scoped_and_filtered(self, db, make_project):
        await make_project(name="Alpha launch")
        await make_project(name="Beta notes", tone="casual")
        await make_project(user_id=OTHER_USER_ID, name="Alpha elsewhere")

        projects, total = await ProjectService.list_projects(db, USER_ID)
        assert total == 2

        casual, casual_total = await ProjectService.list_projects(db, USER_ID, tone="casual")
        assert casual_total == 1
        assert casual[0].name == "Beta notes"

        found, _ = await ProjectService.list_projects(db, USER_ID, search="alpha")
        assert [p.name for p in found] == ["Alpha launch"]

    async def test_pagination(self, db, make_project):
        for i in range(3):
            await make_project(name=f"Project {i}")

        page, total = await ProjectService.list_projects(db, USER_ID, limit=2, offset=2)
        assert total == 3
        assert len(page) == 1

    async def test_invalid_paging_lists_every_field(self, db):
        with pytest.raises(ValidationError) as exc_info:
            await ProjectService.list_projects(db, USER_ID, limit=0, offset=-1)
        assert exc_info.value.fields == ["limit", "offset"]


class TestUpdateAndDeleteProject:

    async def test_partial_update(self, db, make_project):
        project = await make_project()
        updated = await ProjectService.update_project(
            db, USER_ID, project.id, {"tone": "educational", "key_topics": None, "is_active": False}
        )
        assert updated.tone == "educational"
        assert updated.key_topics == ["product", "engineering"]
        assert updated.is_active is False

    async def test_foreign_project_not_found(self, db, make_project):
        project = await make_project(user_id=OTHER_USER_ID)
        with pytest.raises(NotFoundError):
            await ProjectService.get_project(db, USER_ID, project.id)

    async def test_delete_refused_while_sessions_exist(self, db, make_project, make_session):
        project = await make_project()
        session = await make_session(project=project)

        with pytest.raises(InvalidStateError):
            await ProjectService.delete_project(db, USER_ID, project.id)

        await SessionService.delete_session(db, USER_ID, session.id)
        await ProjectService.delete_project(db, USER_ID, project.id)
        with pytest.raises(NotFoundError):
            await ProjectService.get_project(db, USER_ID, project.id)


# ============================================================================
# PIPELINE STATS
# ============================================================================

class TestPipelineStats:

    async def test_empty_pipeline(self, db):
        stats = await StatsService.get_pipeline_stats(db, USER_ID)

        assert stats.total_projects == 0
        assert stats.sessions_by_status == {
            "ideation": 0,
            "generating": 0,
            "reviewing": 0,
            "selecting": 0,
            "completed": 0,
        }
        assert stats.recent_sessions == []

    async def test_counts_workflow_data(self, db, make_project, make_session, make_reviewing_session):
        inactive = await make_project()
        await ProjectService.update_project(db, USER_ID, inactive.id, {"is_active": False})
        await make_session()
        session, versions = await make_reviewing_session(count=2)
        await VersionService.select_version(db, USER_ID, session.id, versions[0].id)
        await UsageService.record_usage(
            db,
            {
                "user_id": USER_ID,
                "action_type": "content_generation",
                "model_used": "gpt-4o-mini",
                "api_cost": Decimal("0.5"),
            },
        )
        await make_session(user_id=OTHER_USER_ID)

        stats = await StatsService.get_pipeline_stats(db, USER_ID)

        assert stats.total_projects == 3
        assert stats.active_projects == 2
        assert stats.sessions_by_status["ideation"] == 1
        assert stats.sessions_by_status["completed"] == 1
        assert stats.sessions_completed_this_week == 1
        assert stats.total_versions == 2
        assert stats.total_assets == 0
        assert stats.usage_cost_last_30_days == pytest.approx(0.5)
        assert len(stats.recent_sessions) == 2
