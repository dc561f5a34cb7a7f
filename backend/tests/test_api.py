"""
HTTP-level tests for the postcraft API.

Runs the FastAPI app in-process through httpx's ASGI transport, with the
database dependency pointed at the per-test SQLite engine and the
generation service backed by a mock OpenAI client.

Usage:
    cd backend && pytest tests/test_api.py -v
"""

import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import OTHER_USER_ID, USER_ID, project_payload, session_payload  # noqa: E402
from postcraft.auth import create_access_token  # noqa: E402
from postcraft.deps import get_db, get_generation_service  # noqa: E402
from postcraft.generation_service import GenerationService  # noqa: E402
from postcraft.main import app  # noqa: E402
from postcraft.services.project_service import ProjectService  # noqa: E402
from postcraft.services.stats_service import StatsService  # noqa: E402


def auth_headers(user_id: str = USER_ID):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def make_image_client():
    client = MagicMock()
    client.images.generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url="https://images.example.com/x.png")])
    )
    return client


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                if session.in_transaction():
                    await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_service] = lambda: GenerationService(
        client=make_image_client(), timeout=5
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_session(client, content_type: str = "text-post"):
    project = await client.post(
        "/api/v1/projects", json=project_payload(), headers=auth_headers()
    )
    assert project.status_code == 201
    project_id = project.json()["id"]
    session = await client.post(
        f"/api/v1/projects/{project_id}/sessions",
        json=session_payload(target_content_type=content_type),
        headers=auth_headers(),
    )
    assert session.status_code == 201
    return project_id, session.json()


async def record_versions(client, session_id: int, count: int = 1):
    response = await client.post(
        f"/api/v1/sessions/{session_id}/versions",
        json={
            "versions": [
                {"content": f"Take {i + 1}", "model_used": "gpt-4o-mini"}
                for i in range(count)
            ]
        },
        headers=auth_headers(),
    )
    assert response.status_code == 201
    return [v["id"] for v in response.json()]


def lost_connection():
    return OperationalError("COMMIT", {}, Exception("server closed the connection"))


# ============================================================================
# BASICS
# ============================================================================

class TestHealthAndAuth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_missing_token_is_401(self, client):
        response = await client.get("/api/v1/projects")
        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "authorization_error"

    async def test_garbage_token_is_401(self, client):
        response = await client.get(
            "/api/v1/projects", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401


class TestProjectEndpoints:

    async def test_create_and_list(self, client):
        created = await client.post(
            "/api/v1/projects", json=project_payload(), headers=auth_headers()
        )
        assert created.status_code == 201
        assert created.json()["user_id"] == USER_ID

        listed = await client.get("/api/v1/projects", headers=auth_headers())
        assert listed.status_code == 200
        assert listed.json()["total"] == 1

        others = await client.get("/api/v1/projects", headers=auth_headers(OTHER_USER_ID))
        assert others.json()["total"] == 0

    async def test_validation_envelope(self, client):
        response = await client.post(
            "/api/v1/projects", json={"name": "", "tone": "angry"}, headers=auth_headers()
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["kind"] == "validation_error"
        assert set(error["details"]["fields"]) == {"name", "tone"}

    async def test_foreign_project_is_404(self, client):
        created = await client.post(
            "/api/v1/projects", json=project_payload(), headers=auth_headers()
        )
        response = await client.get(
            f"/api/v1/projects/{created.json()['id']}", headers=auth_headers(OTHER_USER_ID)
        )
        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "not_found"

    async def test_delete_with_sessions_is_409(self, client):
        project_id, _ = await create_session(client)
        response = await client.delete(
            f"/api/v1/projects/{project_id}", headers=auth_headers()
        )
        assert response.status_code == 409


# ============================================================================
# WORKFLOW
# ============================================================================

class TestWorkflowEndpoints:

    async def test_record_select_and_complete(self, client):
        _, session = await create_session(client)
        session_id = session["id"]

        recorded = await client.post(
            f"/api/v1/sessions/{session_id}/versions",
            json={
                "versions": [
                    {"content": "First take", "model_used": "gpt-4o-mini"},
                    {"content": "Second take", "model_used": "gpt-4o-mini"},
                ]
            },
            headers=auth_headers(),
        )
        assert recorded.status_code == 201
        version_ids = [v["id"] for v in recorded.json()]

        selected = await client.post(
            f"/api/v1/sessions/{session_id}/versions/{version_ids[1]}/select",
            headers=auth_headers(),
        )
        assert selected.status_code == 200
        assert selected.json() == {
            "success": True,
            "session_id": session_id,
            "version_id": version_ids[1],
            "changed": True,
        }

        again = await client.post(
            f"/api/v1/sessions/{session_id}/versions/{version_ids[1]}/select",
            headers=auth_headers(),
        )
        assert again.json()["changed"] is False

        detail = await client.get(f"/api/v1/sessions/{session_id}", headers=auth_headers())
        body = detail.json()
        assert body["status"] == "completed"
        assert body["final_content"] == "Second take"
        assert body["selected_version_id"] == version_ids[1]

        versions = await client.get(
            f"/api/v1/sessions/{session_id}/versions", headers=auth_headers()
        )
        assert [v["is_selected"] for v in versions.json()] == [False, True]

        history = await client.get(
            f"/api/v1/sessions/{session_id}/history", headers=auth_headers()
        )
        assert history.json()[-1]["new_status"] == "completed"

    async def test_select_on_foreign_session_is_403(self, client):
        _, session = await create_session(client)
        response = await client.post(
            f"/api/v1/sessions/{session['id']}/versions/1/select",
            headers=auth_headers(OTHER_USER_ID),
        )
        assert response.status_code == 403

    async def test_unknown_version_is_404(self, client):
        _, session = await create_session(client)
        recorded = await client.post(
            f"/api/v1/sessions/{session['id']}/versions",
            json={"versions": [{"content": "Take", "model_used": "gpt-4o-mini"}]},
            headers=auth_headers(),
        )
        assert recorded.status_code == 201

        unknown = await client.post(
            f"/api/v1/sessions/{session['id']}/versions/999/select",
            headers=auth_headers(),
        )
        assert unknown.status_code == 404

    async def test_generate_asset(self, client):
        _, session = await create_session(client, content_type="carousel")

        response = await client.post(
            "/api/v1/generate/assets",
            json={
                "session_id": session["id"],
                "asset_type": "carousel",
                "prompt": "Cover slide for the launch carousel",
            },
            headers=auth_headers(),
        )
        assert response.status_code == 201
        assert response.json()["asset"]["file_url"] == "https://images.example.com/x.png"

        assets = await client.get(
            f"/api/v1/sessions/{session['id']}/assets", headers=auth_headers()
        )
        assert len(assets.json()) == 1

        usage = await client.get("/api/v1/usage?limit=10", headers=auth_headers())
        assert [u["action_type"] for u in usage.json()] == ["asset_creation"]


class TestUsageEndpoints:

    @pytest.mark.parametrize("limit", [0, 101])
    async def test_limit_out_of_range_is_422(self, client, limit):
        response = await client.get(f"/api/v1/usage?limit={limit}", headers=auth_headers())
        assert response.status_code == 422
        assert response.json()["error"]["details"]["fields"] == ["limit"]

    async def test_stats(self, client):
        await create_session(client)
        response = await client.get("/api/v1/stats", headers=auth_headers())
        assert response.status_code == 200
        assert response.json()["sessions_by_status"]["ideation"] == 1

    async def test_client_reported_usage_is_attributed_to_caller(self, client):
        response = await client.post(
            "/api/v1/usage",
            json={
                "action_type": "content_refinement",
                "model_used": "gpt-4o-mini",
                "tokens_used": 420,
                "user_id": OTHER_USER_ID,
            },
            headers={**auth_headers(), "User-Agent": "postcraft-web/2.1"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == USER_ID
        assert body["action_type"] == "content_refinement"
        assert body["is_successful"] is True

        listed = await client.get("/api/v1/usage", headers=auth_headers())
        assert [u["action_type"] for u in listed.json()] == ["content_refinement"]
        others = await client.get("/api/v1/usage", headers=auth_headers(OTHER_USER_ID))
        assert others.json() == []

    async def test_failed_image_call_can_be_logged(self, client):
        response = await client.post(
            "/api/v1/usage",
            json={
                "action_type": "image_generation",
                "model_used": "dall-e-3",
                "is_successful": False,
                "error_message": "content policy violation",
            },
            headers=auth_headers(),
        )
        assert response.status_code == 201
        assert response.json()["error_message"] == "content policy violation"

    async def test_unknown_action_type_is_422(self, client):
        response = await client.post(
            "/api/v1/usage",
            json={"action_type": "mind_reading", "model_used": "gpt-4o-mini"},
            headers=auth_headers(),
        )
        assert response.status_code == 422
        assert response.json()["error"]["details"]["fields"] == ["action_type"]

    async def test_usage_requires_token(self, client):
        response = await client.post(
            "/api/v1/usage",
            json={"action_type": "content_generation", "model_used": "gpt-4o-mini"},
        )
        assert response.status_code == 401


# ============================================================================
# SELECTING
# ============================================================================

class TestSelectingEndpoint:

    async def test_reviewing_session_moves_to_selecting(self, client):
        _, session = await create_session(client)
        version_ids = await record_versions(client, session["id"], count=2)

        response = await client.post(
            f"/api/v1/sessions/{session['id']}/selecting",
            json={"reason": "comparing takes"},
            headers=auth_headers(),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "selecting"
        assert response.json()["current_step"] == "selecting"

        history = await client.get(
            f"/api/v1/sessions/{session['id']}/history", headers=auth_headers()
        )
        assert history.json()[-1]["new_status"] == "selecting"
        assert history.json()[-1]["reason"] == "comparing takes"

        selected = await client.post(
            f"/api/v1/sessions/{session['id']}/versions/{version_ids[0]}/select",
            headers=auth_headers(),
        )
        assert selected.status_code == 200
        detail = await client.get(f"/api/v1/sessions/{session['id']}", headers=auth_headers())
        assert detail.json()["status"] == "completed"

    async def test_body_is_optional(self, client):
        _, session = await create_session(client)
        await record_versions(client, session["id"])
        response = await client.post(
            f"/api/v1/sessions/{session['id']}/selecting", headers=auth_headers()
        )
        assert response.status_code == 200

    async def test_ideation_session_is_409(self, client):
        _, session = await create_session(client)
        response = await client.post(
            f"/api/v1/sessions/{session['id']}/selecting", headers=auth_headers()
        )
        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "invalid_state"

    async def test_foreign_session_is_404(self, client):
        _, session = await create_session(client)
        await record_versions(client, session["id"])
        response = await client.post(
            f"/api/v1/sessions/{session['id']}/selecting",
            headers=auth_headers(OTHER_USER_ID),
        )
        assert response.status_code == 404


# ============================================================================
# STORE FAILURES
# ============================================================================

class TestStoreFailures:

    async def test_failed_commit_on_select_is_storage_error(self, client):
        _, session = await create_session(client)
        version_ids = await record_versions(client, session["id"])

        with patch.object(AsyncSession, "commit", AsyncMock(side_effect=lost_connection())):
            response = await client.post(
                f"/api/v1/sessions/{session['id']}/versions/{version_ids[0]}/select",
                headers=auth_headers(),
            )

        assert response.status_code == 503
        assert response.json()["error"]["kind"] == "storage_error"
        assert "success" not in response.json()

        detail = await client.get(f"/api/v1/sessions/{session['id']}", headers=auth_headers())
        assert detail.json()["status"] == "reviewing"
        assert detail.json()["is_completed"] is False
        assert detail.json()["selected_version_id"] is None
        versions = await client.get(
            f"/api/v1/sessions/{session['id']}/versions", headers=auth_headers()
        )
        assert [v["is_selected"] for v in versions.json()] == [False]

    async def test_failed_commit_on_create_persists_nothing(self, client):
        with patch.object(AsyncSession, "commit", AsyncMock(side_effect=lost_connection())):
            response = await client.post(
                "/api/v1/projects", json=project_payload(), headers=auth_headers()
            )

        assert response.status_code == 503
        listed = await client.get("/api/v1/projects", headers=auth_headers())
        assert listed.json()["total"] == 0

    async def test_failed_project_listing_is_storage_error(self, client):
        with patch.object(
            ProjectService, "list_projects", AsyncMock(side_effect=lost_connection())
        ):
            response = await client.get("/api/v1/projects", headers=auth_headers())

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["kind"] == "storage_error"
        assert "server closed" not in error["message"]

    async def test_failed_stats_is_storage_error(self, client):
        with patch.object(
            StatsService, "get_pipeline_stats", AsyncMock(side_effect=lost_connection())
        ):
            response = await client.get("/api/v1/stats", headers=auth_headers())

        assert response.status_code == 503
        assert response.json()["error"]["kind"] == "storage_error"
