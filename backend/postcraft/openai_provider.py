"""
OpenAI Provider for the postcraft generation pipeline.

Centralizes the async OpenAI client configuration and the model names used
for chat (post copy) and image (visual assets) generation.

Environment Variables:
- OPENAI_API_KEY: API key (required before the first generation call)
- OPENAI_BASE_URL: Optional alternative endpoint (proxy, compatible gateway)
- POSTCRAFT_CHAT_MODEL: Default chat model (default: gpt-4o-mini)
- POSTCRAFT_IMAGE_MODEL: Default image model (default: dall-e-3)
- GENERATION_TIMEOUT_SECONDS: Per-call timeout (default: 60)

Usage:
    from postcraft.openai_provider import get_async_client, get_chat_model
"""

import logging
import os

from dotenv import load_dotenv
from openai import AsyncOpenAI

load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Loading
# =============================================================================


def _get_required_env(name: str) -> str:
    """Get a required environment variable or raise an error."""
    if value := os.getenv(name):
        return value
    raise ValueError(
        f"Missing required environment variable: {name}. "
        f"OpenAI configuration is required for content generation."
    )


def _get_optional_env(name: str, default: str) -> str:
    return os.getenv(name, default)


class OpenAIConfig:
    """OpenAI configuration container."""

    def __init__(self):
        self.base_url = os.getenv("OPENAI_BASE_URL") or None
        self.chat_model = _get_optional_env("POSTCRAFT_CHAT_MODEL", "gpt-4o-mini")
        self.image_model = _get_optional_env("POSTCRAFT_IMAGE_MODEL", "dall-e-3")
        self.timeout_seconds = float(
            _get_optional_env("GENERATION_TIMEOUT_SECONDS", "60")
        )

    def log_configuration(self):
        """Log the current configuration (without sensitive data)."""
        logger.info("OpenAI Configuration:")
        logger.info("  Base URL: %s", self.base_url or "default")
        logger.info("  Chat Model: %s", self.chat_model)
        logger.info("  Image Model: %s", self.image_model)
        logger.info("  Timeout: %ss", self.timeout_seconds)


_config = OpenAIConfig()
_async_client: AsyncOpenAI | None = None


# =============================================================================
# Convenience Functions
# =============================================================================


def get_chat_model() -> str:
    return _config.chat_model


def get_image_model() -> str:
    return _config.image_model


def get_generation_timeout() -> float:
    return _config.timeout_seconds


def get_async_client() -> AsyncOpenAI:
    """Return the shared async client, creating it on first use.

    Raises:
        ValueError: If ``OPENAI_API_KEY`` is not configured.
    """
    global _async_client
    if _async_client is None:
        api_key = _get_required_env("OPENAI_API_KEY")
        _async_client = AsyncOpenAI(api_key=api_key, base_url=_config.base_url)
        _config.log_configuration()
        logger.info("OpenAI async client initialized")
    return _async_client


__all__ = [
    "OpenAIConfig",
    "get_async_client",
    "get_chat_model",
    "get_image_model",
    "get_generation_timeout",
]
