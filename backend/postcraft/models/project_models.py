"""Pydantic request/response schemas for projects."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from postcraft.models.choices import CONTENT_TYPES, ContentTone


class ProjectCreate(BaseModel):
    """Request body for creating a project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    tone: ContentTone = "professional"
    content_types: List[str] = Field(default_factory=lambda: ["text-post"])
    guidelines: Optional[str] = Field(None, max_length=10000)
    target_audience: Optional[str] = Field(None, max_length=2000)
    key_topics: List[str] = Field(default_factory=list, max_length=50)
    brand_voice: Optional[str] = Field(None, max_length=2000)
    content_pillars: List[str] = Field(default_factory=list, max_length=20)
    default_model: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("content_types")
    @classmethod
    def validate_content_types(cls, v: List[str]) -> List[str]:
        unknown = [item for item in v if item not in CONTENT_TYPES]
        if unknown:
            raise ValueError(
                f"Invalid content types {unknown}. Must be among: {', '.join(CONTENT_TYPES)}"
            )
        return v


class ProjectUpdate(BaseModel):
    """Request body for updating a project. All fields optional."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    tone: Optional[ContentTone] = None
    content_types: Optional[List[str]] = None
    guidelines: Optional[str] = Field(None, max_length=10000)
    target_audience: Optional[str] = Field(None, max_length=2000)
    key_topics: Optional[List[str]] = None
    brand_voice: Optional[str] = Field(None, max_length=2000)
    content_pillars: Optional[List[str]] = None
    is_active: Optional[bool] = None
    default_model: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("name must not be blank")
        return v.strip() if v is not None else v

    @field_validator("content_types")
    @classmethod
    def validate_content_types(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None:
            unknown = [item for item in v if item not in CONTENT_TYPES]
            if unknown:
                raise ValueError(
                    f"Invalid content types {unknown}. Must be among: {', '.join(CONTENT_TYPES)}"
                )
        return v


class ProjectResponse(BaseModel):
    """Full project response (mirrors all DB columns)."""

    id: int
    user_id: str
    name: str
    description: Optional[str] = None
    tone: str
    content_types: List[str] = Field(default_factory=list)
    guidelines: Optional[str] = None
    target_audience: Optional[str] = None
    key_topics: List[str] = Field(default_factory=list)
    brand_voice: Optional[str] = None
    content_pillars: List[str] = Field(default_factory=list)
    is_active: bool = True
    default_model: str
    total_sessions: int = 0
    total_posts: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """Paginated list of projects with total count."""

    projects: List[ProjectResponse]
    total: int
