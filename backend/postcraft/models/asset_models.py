"""Pydantic schemas for generated assets."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from postcraft.models.choices import AssetType


class AssetCreate(BaseModel):
    """Metadata for a visual artifact produced for a session."""

    asset_type: AssetType
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=4000)
    file_size: Optional[int] = Field(None, ge=0)
    prompt: str = Field(..., min_length=1, max_length=10000)
    model: Optional[str] = Field(None, max_length=100)
    style: Optional[str] = Field(None, max_length=100)
    dimensions: Optional[str] = Field(None, max_length=32)
    generation_time: Optional[float] = Field(None, ge=0)
    generation_cost: Optional[Decimal] = Field(None, ge=0)

    @field_validator("file_name", "prompt")
    @classmethod
    def validate_not_blank(cls, v: str, info) -> str:
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    @field_validator("file_url")
    @classmethod
    def validate_file_url(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("file_url must be an absolute http(s) URL")
        return v.strip()


class AssetResponse(BaseModel):
    id: int
    session_id: int
    asset_type: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    prompt: str
    model: Optional[str] = None
    style: Optional[str] = None
    dimensions: Optional[str] = None
    generation_time: Optional[float] = None
    generation_cost: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True
