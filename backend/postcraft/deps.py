"""Shared dependencies for all postcraft API routers.

Centralises the database session and commit helper, the authentication
dependency and the generation-service factory so that every router module
can ``from postcraft.deps import …`` without importing ``main``.
"""

from postcraft.auth import get_current_user_id
from postcraft.database import commit_or_raise, get_db
from postcraft.generation_service import GenerationService

__all__ = ["commit_or_raise", "get_db", "get_current_user_id", "get_generation_service"]


def get_generation_service() -> GenerationService:
    """FastAPI dependency returning a generation service on the shared client."""
    return GenerationService()
