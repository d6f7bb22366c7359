"""
Request models for Dubcast API
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class DubbingCreateRequest(BaseModel):
    """Request model for a dubbing run."""
    target_languages: List[str] = Field(..., min_length=1, description="Languages to dub, e.g. ['en', 'ja']")
    source_url: Optional[str] = Field(None, description="Source video URL or local path")
    asset_id: Optional[str] = Field(None, description="Existing asset to extend")
    section_id: Optional[str] = Field(None, description="Stable external key for the asset")
    title: Optional[str] = Field(None, description="Human readable title")
    include_origin: Optional[bool] = Field(None, description="Add the origin audio track (config default when unset)")


class RefreshMasterRequest(BaseModel):
    """Request model for rebuilding a master playlist from the registry."""
    asset_id: Optional[str] = Field(None, description="Asset ID")
    section_id: Optional[str] = Field(None, description="Section ID")
