"""
Database models for Dubcast.

This module defines SQLAlchemy models for media assets and their
per-language dub tracks.
"""

import uuid
from sqlalchemy import (
    Column, String, DateTime, Integer, Text, ForeignKey, CheckConstraint,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

TRACK_STATUSES = ("pending", "processing", "ready", "failed")


def _new_id() -> str:
    return str(uuid.uuid4())


class MediaAsset(Base):
    """One source video and the location of its master playlist."""

    __tablename__ = "media_assets"

    id = Column(String(36), primary_key=True, default=_new_id)
    section_id = Column(String(64), unique=True, nullable=True)  # Stable external key
    title = Column(String(255))
    source_url = Column(Text, nullable=False)
    key_prefix = Column(Text, nullable=False)   # e.g. "assets/curriculumsection/3/"
    master_key = Column(Text, nullable=False)   # e.g. "assets/curriculumsection/3/master.m3u8"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    dub_tracks = relationship("DubTrack", back_populates="asset", order_by="DubTrack.language")

    def __repr__(self):
        return f"<MediaAsset(id={self.id}, section='{self.section_id}', master='{self.master_key}')>"


class DubTrack(Base):
    """Processing state of one language for one asset."""

    __tablename__ = "dub_tracks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    asset_id = Column(String(36), ForeignKey("media_assets.id", ondelete="CASCADE"), nullable=False)
    language = Column(String(16), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    url = Column(Text)                   # Set only when ready
    error_message = Column(Text)
    provider_job_id = Column(String(128))
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Constraints
    __table_args__ = (
        UniqueConstraint("asset_id", "language", name="uq_dub_track_asset_language"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'ready', 'failed')",
            name="check_dub_track_status",
        ),
    )

    # Relationships
    asset = relationship("MediaAsset", back_populates="dub_tracks")

    def __repr__(self):
        return f"<DubTrack(asset={self.asset_id}, language='{self.language}', status='{self.status}')>"
