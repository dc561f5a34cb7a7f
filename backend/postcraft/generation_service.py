"""
Generation Service - OpenAI-backed content and asset generation.

Calls the external model and records the outcome through the workflow
services: candidate versions, generated assets, and one usage-ledger entry
per model call (successful or not).

Features:
- Diverse variations: each variation uses a different writing approach,
  prioritized by the project's tone
- Concurrent calls, each bounded by a timeout
- Partial failures keep the successful variations; total failure is
  recorded in the ledger and surfaced as GenerationError

Usage:
    service = GenerationService()
    result = await service.generate_content(db, user_id, request)
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postcraft.errors import (
    AuthorizationError,
    GenerationError,
    InvalidStateError,
    parse_input,
    require_user,
)
from postcraft.models.asset_models import AssetCreate, AssetResponse
from postcraft.models.choices import (
    STATUS_IDEATION,
    STATUS_REVIEWING,
    STATUS_SELECTING,
    STEP_ASSET_PENDING,
)
from postcraft.models.db.project import Project
from postcraft.models.db.session import PostSession
from postcraft.models.db.version import ContentVersion
from postcraft.models.generation_models import (
    GenerateAssetRequest,
    GenerateAssetResponse,
    GenerateContentRequest,
    GenerateContentResponse,
    VariationFailure,
)
from postcraft.models.version_models import VersionCreate, VersionResponse
from postcraft.openai_provider import (
    get_async_client,
    get_generation_timeout,
    get_image_model,
)
from postcraft.services.access_control import get_owned_project, get_owned_session
from postcraft.services.asset_service import AssetService
from postcraft.services.session_service import ASSET_STEP_STATUSES, SessionService
from postcraft.services.usage_service import UsageService
from postcraft.services.version_service import VersionService

logger = logging.getLogger(__name__)

# =============================================================================
# Writing approaches
# =============================================================================

VARIATION_APPROACHES: list[str] = [
    "thought-leadership",
    "story-driven",
    "data-driven",
    "question-based",
    "actionable-tips",
    "personal-experience",
    "industry-insights",
    "contrarian-viewpoint",
    "educational-tutorial",
    "behind-the-scenes",
]

TONE_PRIORITIES: dict[str, list[str]] = {
    "professional": [
        "thought-leadership",
        "data-driven",
        "industry-insights",
        "educational-tutorial",
    ],
    "casual": [
        "story-driven",
        "personal-experience",
        "question-based",
        "behind-the-scenes",
    ],
    "thought-leader": [
        "thought-leadership",
        "contrarian-viewpoint",
        "industry-insights",
        "data-driven",
    ],
}

# approach -> (approach, focus, style)
APPROACH_GUIDANCE: dict[str, tuple] = {
    "thought-leadership": (
        "Position the author as a thought leader and industry expert.",
        "Industry insights, future predictions, expert perspectives, strategic thinking.",
        "Authoritative yet accessible, forward-thinking, confident.",
    ),
    "story-driven": (
        "Use narrative techniques and storytelling to engage the audience.",
        "Personal anecdotes, case studies, customer stories, journey narratives.",
        "Engaging, relatable, emotional connection, clear story arc.",
    ),
    "data-driven": (
        "Support arguments with statistics, research, and concrete data.",
        "Research findings, market data, performance metrics, trend analysis.",
        "Factual, credible, analytical, evidence-based.",
    ),
    "question-based": (
        "Start with compelling questions that provoke thought and engagement.",
        "Interactive content, audience participation, discussion starters.",
        "Conversational, curious, engaging, thought-provoking.",
    ),
    "actionable-tips": (
        "Provide practical, implementable advice.",
        "Step-by-step guidance, how-to content, practical frameworks, tools.",
        "Clear, instructional, helpful, immediately useful.",
    ),
    "personal-experience": (
        "Share personal insights and experiences.",
        "Lessons learned, personal journey, authentic experiences.",
        "Authentic, relatable, honest, inspiring.",
    ),
    "industry-insights": (
        "Provide deep industry knowledge and analysis.",
        "Market trends, industry changes, professional insights, sector expertise.",
        "Knowledgeable, analytical, insider perspective, authoritative.",
    ),
    "contrarian-viewpoint": (
        "Challenge conventional wisdom with a different perspective.",
        "Alternative viewpoints, debate topics, unconventional thinking.",
        "Bold, thoughtful, well-reasoned, respectful but challenging.",
    ),
    "educational-tutorial": (
        "Teach concepts and skills in an educational format.",
        "Learning objectives, skill development, knowledge sharing.",
        "Clear, structured, informative, progressive learning.",
    ),
    "behind-the-scenes": (
        "Show the process, journey, or inner workings.",
        "Process insights, team dynamics, company culture, work methods.",
        "Transparent, authentic, insider view, relatable.",
    ),
}

# Rough cost estimates for monitoring, USD
CHAT_COST_PER_1K_TOKENS: dict[str, float] = {
    "gpt-4o": 0.0075,
    "gpt-4o-mini": 0.0004,
    "gpt-4.1": 0.005,
    "gpt-4.1-mini": 0.001,
}
DEFAULT_CHAT_COST_PER_1K_TOKENS = 0.03
IMAGE_COST_PER_CALL: dict[str, float] = {"dall-e-3": 0.04, "dall-e-2": 0.02}
DEFAULT_IMAGE_COST = 0.04

MAX_COMPLETION_TOKENS = 1200


def select_diverse_approaches(count: int, tone: str | None) -> list[str]:
    """Pick *count* distinct approaches, tone-preferred ones first."""
    priority = TONE_PRIORITIES.get(tone or "", [])
    ranked = sorted(
        VARIATION_APPROACHES,
        key=lambda a: priority.index(a) if a in priority else len(priority),
    )
    return ranked[:count]


def estimate_chat_cost(model: str, tokens: int | None) -> Decimal | None:
    if tokens is None:
        return None
    rate = CHAT_COST_PER_1K_TOKENS.get(model, DEFAULT_CHAT_COST_PER_1K_TOKENS)
    return Decimal(str(round(tokens / 1000 * rate, 6)))


def build_system_prompt(
    approach: str, project: Project, content_type: str, tone: str
) -> str:
    base = (
        f"You are a LinkedIn content expert specializing in {approach} content creation.\n\n"
        "PROJECT CONTEXT:\n"
        f"- Project Name: {project.name}\n"
        f"- Project Tone: {project.tone or tone}\n"
        f"- Content Type: {content_type}\n"
        f"- Project Guidelines: {project.guidelines or 'Standard LinkedIn best practices'}"
    )
    if project.target_audience:
        base += f"\n- Target Audience: {project.target_audience}"
    if project.brand_voice:
        base += f"\n- Brand Voice: {project.brand_voice}"
    if project.key_topics:
        base += f"\n- Key Topics: {', '.join(project.key_topics)}"

    guidance = APPROACH_GUIDANCE.get(approach)
    if guidance is None:
        guidance = (
            f"Create engaging {content_type} content with a {tone} tone.",
            "Value delivery, audience engagement, professional standards.",
            "Clear, engaging, valuable, appropriate for LinkedIn.",
        )
    approach_text, focus, style = guidance
    return (
        f"{base}\n\nAPPROACH: {approach_text}\nFOCUS: {focus}\nSTYLE: {style}\n\n"
        "Respond with a JSON object with keys: content (string), "
        "hashtags (array of 3-5 strings), call_to_action (string or null)."
    )


def build_user_prompt(
    session: PostSession, approach: str, guidelines: str | None = None
) -> str:
    if session.custom_prompt:
        return session.custom_prompt.replace("{post_idea}", session.post_idea)

    parts = [
        f"Create a LinkedIn post using the {approach} approach for this idea:",
        "",
        f"POST IDEA: {session.post_idea}",
    ]
    if session.additional_context:
        parts.append(f"CONTEXT: {session.additional_context}")
    if guidelines:
        parts.append(f"ADDITIONAL GUIDELINES: {guidelines}")
    parts.extend(
        [
            "",
            "REQUIREMENTS:",
            f"- Make this variation distinctly different by focusing on {approach} elements",
            "- Include 3-5 relevant hashtags",
            "- Keep within LinkedIn's best practices for post length and engagement",
        ]
    )
    return "\n".join(parts)


@dataclass
class VariationResult:
    """Outcome of one chat-completion call."""

    approach: str
    prompt: str
    generation_time: float = 0.0
    content: str | None = None
    hashtags: list[str] = field(default_factory=list)
    call_to_action: str | None = None
    tokens_used: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.content)


class GenerationService:
    """Orchestrates model calls and records their outcomes."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        image_model: str | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self.image_model = image_model or get_image_model()
        self.timeout = timeout if timeout is not None else get_generation_timeout()

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = get_async_client()
        return self._client

    # =========================================================================
    # Content
    # =========================================================================

    async def _generate_variation(
        self, model: str, approach: str, system_prompt: str, user_prompt: str
    ) -> VariationResult:
        result = VariationResult(approach=approach, prompt=f"Approach: {approach}")
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                    max_tokens=MAX_COMPLETION_TOKENS,
                ),
                timeout=self.timeout,
            )
            parsed = json.loads(response.choices[0].message.content or "")
            if not isinstance(parsed, dict):
                raise ValueError("model returned a non-object payload")
            content = (parsed.get("content") or "").strip()
            if not content:
                raise ValueError("model returned empty content")
            result.content = content
            result.hashtags = [str(tag) for tag in parsed.get("hashtags") or []][:5]
            result.call_to_action = parsed.get("call_to_action") or None
            usage = getattr(response, "usage", None)
            result.tokens_used = getattr(usage, "total_tokens", None)
        except asyncio.TimeoutError:
            result.error = f"Timed out after {self.timeout}s"
        except (OpenAIError, ValueError, IndexError) as e:
            result.error = str(e) or e.__class__.__name__
        result.generation_time = round(time.monotonic() - started, 3)
        if result.error:
            logger.warning("Variation %s failed: %s", approach, result.error)
        return result

    async def generate_content(
        self,
        db: AsyncSession,
        user_id: str,
        request: GenerateContentRequest | dict[str, Any],
    ) -> GenerateContentResponse:
        """Generate candidate versions for a session.

        Args:
            db: Async database session.
            user_id: Acting user.
            request: Session id, variation count, tone and guidelines.

        Returns:
            GenerateContentResponse with the recorded versions and any
            per-approach failures.

        Raises:
            ValidationError: If the request is invalid.
            NotFoundError: If the session is absent or foreign.
            InvalidStateError: If the session is completed.
            GenerationError: If every model call failed.
        """
        user_id = require_user(user_id)
        req = parse_input(GenerateContentRequest, request)
        session = await get_owned_session(db, req.session_id, user_id)
        project = await get_owned_project(db, session.project_id, user_id)

        if session.status not in (STATUS_IDEATION, STATUS_REVIEWING, STATUS_SELECTING):
            raise InvalidStateError(
                f"Cannot generate content while session is '{session.status}'",
                details={"session_id": session.id, "status": session.status},
            )

        session_id = session.id
        project_id = project.id
        model = session.selected_model
        tone = req.tone or project.tone
        action_type = (
            "content_regeneration" if session.total_versions else "content_generation"
        )
        approaches = select_diverse_approaches(req.variations, tone)
        logger.info(
            "Generating %d variation(s) for session %s with %s: %s",
            len(approaches),
            session_id,
            model,
            approaches,
        )

        results = await asyncio.gather(
            *[
                self._generate_variation(
                    model,
                    approach,
                    build_system_prompt(
                        approach, project, session.target_content_type, tone
                    ),
                    build_user_prompt(session, approach, req.guidelines),
                )
                for approach in approaches
            ]
        )

        for result in results:
            await UsageService.record_usage(
                db,
                {
                    "user_id": user_id,
                    "project_id": project_id,
                    "session_id": session_id,
                    "action_type": action_type,
                    "model_used": model,
                    "tokens_used": result.tokens_used,
                    "api_cost": estimate_chat_cost(model, result.tokens_used),
                    "processing_time": result.generation_time,
                    "is_successful": result.ok,
                    "error_message": result.error,
                    "request_payload": {
                        "approach": result.approach,
                        "tone": tone,
                        "content_type": session.target_content_type,
                    },
                    "response_size": len(result.content) if result.content else None,
                },
            )

        succeeded = [r for r in results if r.ok]
        failures = [
            VariationFailure(approach=r.approach, error=r.error or "empty content")
            for r in results
            if not r.ok
        ]
        if not succeeded:
            # Failure entries must outlive the request rollback
            await db.commit()
            raise GenerationError(
                "All content variations failed",
                details={
                    "session_id": session_id,
                    "failures": [f.model_dump() for f in failures],
                },
            )

        batch_result = await db.execute(
            select(func.coalesce(func.max(ContentVersion.generation_batch), 0)).where(
                ContentVersion.session_id == session_id
            )
        )
        batch = (batch_result.scalar() or 0) + 1

        await SessionService.transition_to_generating(
            db, user_id, session_id, reason=f"Generation batch {batch}"
        )
        versions = await VersionService.record_versions(
            db,
            user_id,
            session_id,
            [
                VersionCreate(
                    content=r.content,
                    model_used=model,
                    generation_batch=batch,
                    prompt=r.prompt,
                    tokens_used=r.tokens_used,
                    generation_time=r.generation_time,
                    hashtags=r.hashtags,
                    call_to_action=r.call_to_action,
                )
                for r in succeeded
            ],
        )

        return GenerateContentResponse(
            session_id=session_id,
            approaches=approaches,
            versions=[VersionResponse.model_validate(v) for v in versions],
            failures=failures,
        )

    # =========================================================================
    # Assets
    # =========================================================================

    async def generate_asset(
        self,
        db: AsyncSession,
        user_id: str,
        request: GenerateAssetRequest | dict[str, Any],
    ) -> GenerateAssetResponse:
        """Generate one visual asset for a session that needs one.

        Raises:
            ValidationError: If the request is invalid.
            AuthorizationError: If the session is absent or foreign.
            InvalidStateError: If the session does not need an asset.
            GenerationError: If the image call failed or timed out.
        """
        user_id = require_user(user_id)
        req = parse_input(GenerateAssetRequest, request)
        session = await get_owned_session(
            db, req.session_id, user_id, missing=AuthorizationError
        )
        if not session.needs_asset:
            raise InvalidStateError(
                "Session does not require an asset",
                details={"session_id": session.id},
            )

        session_id = session.id
        project_id = session.project_id
        model = req.model or self.image_model
        if (
            session.status in ASSET_STEP_STATUSES
            and session.current_step != STEP_ASSET_PENDING
        ):
            await SessionService.transition_to_asset_pending(
                db, user_id, session_id, reason=f"Generating {req.asset_type}"
            )

        full_prompt = f"{req.prompt}\nStyle: {req.style}. Format: {req.asset_type}."
        usage_entry: dict[str, Any] = {
            "user_id": user_id,
            "project_id": project_id,
            "session_id": session_id,
            "action_type": "asset_creation",
            "model_used": model,
            "request_payload": {
                "asset_type": req.asset_type,
                "style": req.style,
                "dimensions": req.dimensions,
            },
        }

        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.images.generate(
                    model=model, prompt=full_prompt, size=req.dimensions, n=1
                ),
                timeout=self.timeout,
            )
            file_url = response.data[0].url
            if not file_url:
                raise ValueError("image model returned no URL")
        except (asyncio.TimeoutError, OpenAIError, ValueError, IndexError) as e:
            elapsed = round(time.monotonic() - started, 3)
            message = (
                f"Timed out after {self.timeout}s"
                if isinstance(e, asyncio.TimeoutError)
                else str(e) or e.__class__.__name__
            )
            logger.error("Asset generation failed for session %s: %s", session_id, message)
            await UsageService.record_usage(
                db,
                {
                    **usage_entry,
                    "processing_time": elapsed,
                    "is_successful": False,
                    "error_message": message,
                },
            )
            # Failure entries must outlive the request rollback
            await db.commit()
            raise GenerationError(
                "Asset generation failed",
                details={"session_id": session_id, "error": message},
            ) from e

        elapsed = round(time.monotonic() - started, 3)
        cost = Decimal(str(IMAGE_COST_PER_CALL.get(model, DEFAULT_IMAGE_COST)))
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        asset = await AssetService.record_asset(
            db,
            user_id,
            session_id,
            AssetCreate(
                asset_type=req.asset_type,
                file_name=f"{req.asset_type}_{stamp}.png",
                file_url=file_url,
                prompt=req.prompt,
                model=model,
                style=req.style,
                dimensions=req.dimensions,
                generation_time=elapsed,
                generation_cost=cost,
            ),
        )
        await UsageService.record_usage(
            db,
            {
                **usage_entry,
                "processing_time": elapsed,
                "api_cost": cost,
                "response_size": len(file_url),
            },
        )
        return GenerateAssetResponse(
            asset=AssetResponse.model_validate(asset), generation_time=elapsed
        )
