"""Closed vocabularies shared by the ORM models, schemas and services."""

from typing import Literal, get_args

ContentTone = Literal[
    "professional",
    "casual",
    "thought-leader",
    "provocative",
    "educational",
    "inspirational",
    "conversational",
    "custom",
]

ContentType = Literal[
    "text-post",
    "carousel",
    "video-script",
    "poll",
    "article",
    "story",
    "announcement",
]

SessionStatus = Literal["ideation", "generating", "reviewing", "selecting", "completed"]

# current_step extends status with the asset sub-state
SessionStep = Literal[
    "ideation", "generating", "asset_pending", "reviewing", "selecting", "completed"
]

ActionType = Literal[
    "content_generation",
    "content_regeneration",
    "image_generation",
    "content_refinement",
    "asset_creation",
]

AssetType = Literal[
    "image", "carousel", "infographic", "banner", "thumbnail", "logo", "chart"
]

CONTENT_TONES: tuple[str, ...] = get_args(ContentTone)
CONTENT_TYPES: tuple[str, ...] = get_args(ContentType)
SESSION_STATUSES: tuple[str, ...] = get_args(SessionStatus)
SESSION_STEPS: tuple[str, ...] = get_args(SessionStep)
ACTION_TYPES: tuple[str, ...] = get_args(ActionType)
ASSET_TYPES: tuple[str, ...] = get_args(AssetType)

# Content types whose sessions carry a visual asset step
ASSET_REQUIRED_CONTENT_TYPES = frozenset({"carousel", "story"})

STATUS_IDEATION = "ideation"
STATUS_GENERATING = "generating"
STATUS_REVIEWING = "reviewing"
STATUS_SELECTING = "selecting"
STATUS_COMPLETED = "completed"
STEP_ASSET_PENDING = "asset_pending"
