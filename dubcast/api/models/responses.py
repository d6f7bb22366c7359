"""
Response models for Dubcast API
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class LanguageOutcomeResponse(BaseModel):
    """Per-language result of a dubbing run."""
    language: str
    status: str = Field(..., description="ready, already_ready, in_progress or failed")
    url: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    reused: bool = False


class DubbingResponse(BaseModel):
    """Response model for dubbing and playlist operations."""
    asset_id: str
    success: bool
    partial: bool = False
    outcomes: List[LanguageOutcomeResponse] = Field(default_factory=list)
    manifest_key: Optional[str] = None
    manifest_url: Optional[str] = None
    ready_languages: List[str] = Field(default_factory=list)
    uploaded: bool = False
    invalidated: bool = False
    error: Optional[str] = None


class TrackResponse(BaseModel):
    """One dub track as recorded in the registry."""
    language: str
    status: str
    url: Optional[str] = None
    error_message: Optional[str] = None
    provider_job_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AssetResponse(BaseModel):
    """A media asset and where its bundle lives."""
    asset_id: str
    section_id: Optional[str] = None
    title: Optional[str] = None
    source_url: str
    master_key: str
    created_at: Optional[datetime] = None


class AssetTracksResponse(BaseModel):
    asset_id: str
    section_id: Optional[str] = None
    master_key: str
    tracks: List[TrackResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(default_factory=datetime.now, description="Check timestamp")
    service: str = Field(default="dubcast-api", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")


class ErrorResponse(BaseModel):
    """Response model for errors."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")
