"""
CRUD operations for Dubcast database models.

This module provides database operations for MediaAsset and DubTrack
models. Status transitions are single conditional UPDATE statements so
that concurrent writers for the same (asset, language) cannot interleave
a read-modify-write.
"""

from datetime import datetime, timezone
from typing import Optional, List, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dubcast.db.models import MediaAsset, DubTrack
from dubcast.exceptions import TrackStateError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaAssetCRUD:
    """CRUD operations for MediaAsset model."""

    @staticmethod
    def create(db: Session, source_url: str, key_prefix: str, master_key: str,
               section_id: str = None, title: str = None, asset_id: str = None) -> MediaAsset:
        """Create new asset record."""
        asset = MediaAsset(
            section_id=section_id,
            source_url=source_url,
            key_prefix=key_prefix,
            master_key=master_key,
            title=title,
        )
        if asset_id:
            asset.id = str(asset_id)
        db.add(asset)
        db.commit()
        db.refresh(asset)
        return asset

    @staticmethod
    def get_by_id(db: Session, asset_id: str) -> Optional[MediaAsset]:
        """Get asset by ID."""
        return db.query(MediaAsset).filter(MediaAsset.id == str(asset_id)).first()

    @staticmethod
    def get_by_section(db: Session, section_id: str) -> Optional[MediaAsset]:
        """Get asset by its stable external section key."""
        return db.query(MediaAsset).filter(MediaAsset.section_id == str(section_id)).first()

    @staticmethod
    def update_source(db: Session, asset_id: str, source_url: str) -> Optional[MediaAsset]:
        """Replace the source reference."""
        asset = db.query(MediaAsset).filter(MediaAsset.id == str(asset_id)).first()
        if asset and source_url and asset.source_url != source_url:
            asset.source_url = source_url
            db.commit()
            db.refresh(asset)
        return asset

    @staticmethod
    def list_all(db: Session, skip: int = 0, limit: int = 100) -> List[MediaAsset]:
        """List all assets with pagination."""
        return db.query(MediaAsset).order_by(MediaAsset.created_at).offset(skip).limit(limit).all()


class DubTrackCRUD:
    """CRUD operations for DubTrack model."""

    @staticmethod
    def get(db: Session, asset_id: str, language: str) -> Optional[DubTrack]:
        """Get the track row for one (asset, language)."""
        return db.query(DubTrack).filter(
            DubTrack.asset_id == str(asset_id),
            DubTrack.language == language,
        ).first()

    @staticmethod
    def get_by_asset(db: Session, asset_id: str) -> List[DubTrack]:
        """Get all tracks for an asset ordered by language."""
        return db.query(DubTrack).filter(
            DubTrack.asset_id == str(asset_id)
        ).order_by(DubTrack.language).all()

    @staticmethod
    def get_by_status(db: Session, asset_id: str, status: str) -> List[DubTrack]:
        """Get tracks of an asset in one status ordered by language."""
        return db.query(DubTrack).filter(
            DubTrack.asset_id == str(asset_id),
            DubTrack.status == status,
        ).order_by(DubTrack.language).all()

    @staticmethod
    def create_pending(db: Session, asset_id: str, language: str) -> Tuple[DubTrack, bool]:
        """
        Insert a pending row unless one already exists.

        Returns:
            Tuple of (row, created). A concurrent insert that wins the unique
            constraint is treated as "already exists".
        """
        existing = DubTrackCRUD.get(db, asset_id, language)
        if existing:
            return existing, False

        track = DubTrack(asset_id=str(asset_id), language=language, status="pending")
        db.add(track)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return DubTrackCRUD.get(db, asset_id, language), False
        db.refresh(track)
        return track, True

    @staticmethod
    def transition(db: Session, asset_id: str, language: str, allowed_from: Sequence[str],
                   status: str, exclusive: bool = False, **values) -> DubTrack:
        """
        Move a track to ``status`` if it is currently in ``allowed_from``.

        A row already in the target status is returned unchanged, which
        makes repeated transitions idempotent. With ``exclusive`` only the
        caller whose UPDATE matched succeeds; a row already moved by
        someone else raises instead.

        Raises:
            TrackStateError: If the row is missing or in a status the
                transition does not allow
        """
        values["status"] = status
        values["updated_at"] = utcnow()
        updated = db.query(DubTrack).filter(
            DubTrack.asset_id == str(asset_id),
            DubTrack.language == language,
            DubTrack.status.in_(list(allowed_from)),
        ).update(values, synchronize_session=False)
        db.commit()

        track = DubTrackCRUD.get(db, asset_id, language)
        if track is not None:
            db.refresh(track)
        if updated:
            return track
        if track is None:
            raise TrackStateError(language, "missing", status)
        if track.status == status and not exclusive:
            return track
        raise TrackStateError(language, track.status, status)

