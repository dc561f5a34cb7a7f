"""Pydantic request/response schemas for post sessions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from postcraft.models.choices import ContentType


def _not_blank(v: str, field: str) -> str:
    if not v.strip():
        raise ValueError(f"{field} must not be blank")
    return v


class SessionCreate(BaseModel):
    """Request body for starting a session under a project.

    ``needs_asset`` is optional; when omitted it is derived from
    ``target_content_type``.
    """

    post_idea: str = Field(..., min_length=1, max_length=5000)
    additional_context: Optional[str] = Field(None, max_length=10000)
    target_content_type: ContentType = "text-post"
    selected_model: str = Field(..., min_length=1, max_length=100)
    custom_prompt: Optional[str] = Field(None, max_length=10000)
    needs_asset: Optional[bool] = None

    @field_validator("post_idea")
    @classmethod
    def validate_post_idea(cls, v: str) -> str:
        return _not_blank(v, "post_idea")

    @field_validator("selected_model")
    @classmethod
    def validate_selected_model(cls, v: str) -> str:
        return _not_blank(v, "selected_model")


class SessionUpdate(BaseModel):
    """Editable, non-workflow session fields. All optional."""

    post_idea: Optional[str] = Field(None, min_length=1, max_length=5000)
    additional_context: Optional[str] = Field(None, max_length=10000)
    target_content_type: Optional[ContentType] = None
    selected_model: Optional[str] = Field(None, min_length=1, max_length=100)
    custom_prompt: Optional[str] = Field(None, max_length=10000)

    @field_validator("post_idea", "selected_model")
    @classmethod
    def validate_not_blank(cls, v: Optional[str], info) -> Optional[str]:
        if v is not None:
            return _not_blank(v, info.field_name)
        return v


class SessionResponse(BaseModel):
    id: int
    project_id: int
    user_id: str
    post_idea: str
    additional_context: Optional[str] = None
    target_content_type: str
    selected_model: str
    custom_prompt: Optional[str] = None
    status: str
    current_step: str
    total_versions: int = 0
    selected_version_id: Optional[int] = None
    needs_asset: bool
    asset_generated: bool
    final_content: Optional[str] = None
    is_completed: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SessionListResponse(BaseModel):
    sessions: List[SessionResponse]
    total: int


class StatusHistoryResponse(BaseModel):
    """One recorded state-machine transition."""

    id: int
    session_id: int
    old_status: Optional[str] = None
    new_status: str
    old_step: Optional[str] = None
    new_step: str
    changed_by: str
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SessionTransitionRequest(BaseModel):
    """Optional note recorded with a user-initiated status change."""

    reason: Optional[str] = Field(None, max_length=500)
