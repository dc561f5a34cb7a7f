"""Pydantic schemas for the generation endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from postcraft.models.asset_models import AssetResponse
from postcraft.models.choices import AssetType, ContentTone
from postcraft.models.version_models import VersionResponse


class GenerateContentRequest(BaseModel):
    session_id: int
    tone: Optional[ContentTone] = None
    guidelines: Optional[str] = Field(None, max_length=5000)
    variations: int = Field(3, ge=1, le=6)


class VariationFailure(BaseModel):
    approach: str
    error: str


class GenerateContentResponse(BaseModel):
    session_id: int
    approaches: List[str]
    versions: List[VersionResponse]
    failures: List[VariationFailure] = Field(default_factory=list)


class GenerateAssetRequest(BaseModel):
    session_id: int
    asset_type: AssetType
    prompt: str = Field(..., min_length=10, max_length=4000)
    style: str = Field("professional", max_length=100)
    dimensions: str = Field("1024x1024", pattern=r"^\d{2,5}x\d{2,5}$")
    model: Optional[str] = Field(None, max_length=100)


class GenerateAssetResponse(BaseModel):
    asset: AssetResponse
    generation_time: float
