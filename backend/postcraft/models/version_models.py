"""Pydantic schemas for content versions and version selection."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_VERSIONS_PER_BATCH = 10


class VersionCreate(BaseModel):
    """One generated candidate for a session."""

    content: str = Field(..., min_length=1, max_length=20000)
    model_used: str = Field(..., min_length=1, max_length=100)
    version_number: Optional[int] = Field(None, ge=1)
    generation_batch: int = Field(1, ge=1)
    prompt: Optional[str] = Field(None, max_length=20000)
    tokens_used: Optional[int] = Field(None, ge=0)
    generation_time: Optional[float] = Field(None, ge=0)
    hashtags: List[str] = Field(default_factory=list, max_length=30)
    mentions: List[str] = Field(default_factory=list, max_length=30)
    call_to_action: Optional[str] = Field(None, max_length=2000)
    content_length: Optional[int] = Field(None, ge=0)
    estimated_read_time: Optional[int] = Field(None, ge=0)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v


class VersionBatchCreate(BaseModel):
    """A batch of 1..10 versions recorded in one transaction."""

    versions: List[VersionCreate] = Field(
        ..., min_length=1, max_length=MAX_VERSIONS_PER_BATCH
    )

    @model_validator(mode="after")
    def validate_unique_numbers(self) -> "VersionBatchCreate":
        numbers = [v.version_number for v in self.versions if v.version_number is not None]
        if len(numbers) != len(set(numbers)):
            raise ValueError("version numbers must be unique within a batch")
        return self


class VersionResponse(BaseModel):
    id: int
    session_id: int
    version_number: int
    generation_batch: int
    content: str
    content_length: Optional[int] = None
    estimated_read_time: Optional[int] = None
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)
    call_to_action: Optional[str] = None
    model_used: str
    tokens_used: Optional[int] = None
    generation_time: Optional[float] = None
    prompt: Optional[str] = None
    is_selected: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SelectionResult(BaseModel):
    """Explicit outcome of a version selection.

    ``changed`` is False when the call was an idempotent re-selection.
    """

    success: bool
    session_id: int
    version_id: int
    changed: bool
