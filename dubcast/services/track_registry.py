"""
Track Registry
Logical operations and state machine over per-language dub tracks.

State machine::

    pending -> processing -> ready
                          -> failed -> pending   (explicit retry only)

Every method opens its own short session, so the registry is safe to call
from the per-language worker threads and always reads fresh state.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from dubcast.db.crud import DubTrackCRUD, MediaAssetCRUD, utcnow
from dubcast.db.models import DubTrack, MediaAsset
from dubcast.db.session import DatabaseManager

logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSING = "processing"
READY = "ready"
FAILED = "failed"


@dataclass(frozen=True)
class TrackRecord:
    """Detached snapshot of a dub track row."""
    asset_id: str
    language: str
    status: str
    url: Optional[str] = None
    error_message: Optional[str] = None
    provider_job_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: DubTrack) -> "TrackRecord":
        return cls(
            asset_id=row.asset_id,
            language=row.language,
            status=row.status,
            url=row.url,
            error_message=row.error_message,
            provider_job_id=row.provider_job_id,
            started_at=row.started_at,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )

    @property
    def is_ready(self) -> bool:
        return self.status == READY


@dataclass(frozen=True)
class AssetRecord:
    """Detached snapshot of a media asset row."""
    id: str
    source_url: str
    key_prefix: str
    master_key: str
    section_id: Optional[str] = None
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: MediaAsset) -> "AssetRecord":
        return cls(
            id=row.id,
            source_url=row.source_url,
            key_prefix=row.key_prefix,
            master_key=row.master_key,
            section_id=row.section_id,
            title=row.title,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite hands back naive values that were written as UTC
        return value.replace(tzinfo=timezone.utc)
    return value


class AssetRepository:
    """Find-or-create access to media assets."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    def get(self, asset_id: str) -> Optional[AssetRecord]:
        with self.database.session() as db:
            row = MediaAssetCRUD.get_by_id(db, asset_id)
            return AssetRecord.from_row(row) if row else None

    def get_by_section(self, section_id: str) -> Optional[AssetRecord]:
        with self.database.session() as db:
            row = MediaAssetCRUD.get_by_section(db, section_id)
            return AssetRecord.from_row(row) if row else None

    def create(self, source_url: str, key_prefix: str, master_key: str,
               section_id: Optional[str] = None, title: Optional[str] = None,
               asset_id: Optional[str] = None) -> AssetRecord:
        with self.database.session() as db:
            row = MediaAssetCRUD.create(
                db,
                source_url=source_url,
                key_prefix=key_prefix,
                master_key=master_key,
                section_id=section_id,
                title=title,
                asset_id=asset_id,
            )
            logger.info(f"Created media asset {row.id} (section={section_id})")
            return AssetRecord.from_row(row)

    def update_source(self, asset_id: str, source_url: str) -> Optional[AssetRecord]:
        with self.database.session() as db:
            row = MediaAssetCRUD.update_source(db, asset_id, source_url)
            return AssetRecord.from_row(row) if row else None

    def list(self, skip: int = 0, limit: int = 100) -> List[AssetRecord]:
        with self.database.session() as db:
            return [AssetRecord.from_row(row) for row in MediaAssetCRUD.list_all(db, skip, limit)]


class TrackRegistry:
    """Per-language dub track state for media assets."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    def get(self, asset_id: str, language: str) -> Optional[TrackRecord]:
        with self.database.session() as db:
            row = DubTrackCRUD.get(db, asset_id, language)
            return TrackRecord.from_row(row) if row else None

    def list_all(self, asset_id: str) -> List[TrackRecord]:
        with self.database.session() as db:
            return [TrackRecord.from_row(row) for row in DubTrackCRUD.get_by_asset(db, asset_id)]

    def list_ready(self, asset_id: str) -> List[TrackRecord]:
        """
        Ready tracks for an asset, ordered by language.

        This is the only input to master playlist rebuilds and is never
        cached: another request may have advanced state meanwhile.
        """
        with self.database.session() as db:
            return [TrackRecord.from_row(row) for row in DubTrackCRUD.get_by_status(db, asset_id, READY)]

    def diff(self, asset_id: str, requested: Iterable[str]) -> List[str]:
        """Requested languages minus those already ready, in request order."""
        ready = {track.language for track in self.list_ready(asset_id)}
        missing = []
        for language in requested:
            if language not in ready and language not in missing:
                missing.append(language)
        return missing

    def upsert_pending(self, asset_id: str, language: str) -> TrackRecord:
        """Create a pending row if absent; existing rows are left as they are."""
        with self.database.session() as db:
            row, created = DubTrackCRUD.create_pending(db, asset_id, language)
            if created:
                logger.info(f"[{asset_id}] Track '{language}' registered as pending")
            else:
                logger.debug(f"[{asset_id}] Track '{language}' already exists ({row.status})")
            return TrackRecord.from_row(row)

    def mark_processing(self, asset_id: str, language: str) -> TrackRecord:
        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [PENDING], PROCESSING, exclusive=True,
                started_at=utcnow(), completed_at=None, error_message=None,
            )
            logger.info(f"[{asset_id}] Track '{language}' -> processing")
            return TrackRecord.from_row(row)

    def set_provider_job(self, asset_id: str, language: str, job_id: str) -> TrackRecord:
        """Record the provider job id of a processing track."""
        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [PROCESSING], PROCESSING, provider_job_id=job_id,
            )
            return TrackRecord.from_row(row)

    def mark_ready(self, asset_id: str, language: str, url: str) -> TrackRecord:
        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [PROCESSING], READY,
                url=url, error_message=None, completed_at=utcnow(),
            )
            logger.info(f"[{asset_id}] Track '{language}' -> ready ({url})")
            return TrackRecord.from_row(row)

    def mark_failed(self, asset_id: str, language: str, reason: str) -> TrackRecord:
        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [PROCESSING], FAILED,
                url=None, error_message=reason, completed_at=utcnow(),
            )
            logger.warning(f"[{asset_id}] Track '{language}' -> failed: {reason}")
            return TrackRecord.from_row(row)

    def retry(self, asset_id: str, language: str) -> TrackRecord:
        """Explicit retry: failed -> pending."""
        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [FAILED], PENDING,
                error_message=None, provider_job_id=None, started_at=None, completed_at=None,
            )
            logger.info(f"[{asset_id}] Track '{language}' re-entered pending for retry")
            return TrackRecord.from_row(row)

    def reclaim_stale(self, asset_id: str, language: str, older_than: timedelta,
                      now: Optional[datetime] = None) -> bool:
        """
        Reset a processing row left behind by a crashed run.

        Returns:
            True if the row was stale and is now pending
        """
        track = self.get(asset_id, language)
        if track is None or track.status != PROCESSING:
            return False

        started = _as_utc(track.started_at or track.updated_at)
        now = now or utcnow()
        if started is not None and now - started < older_than:
            return False

        with self.database.session() as db:
            row = DubTrackCRUD.transition(
                db, asset_id, language, [PROCESSING], PENDING,
                started_at=None, provider_job_id=None,
            )
        logger.warning(f"[{asset_id}] Reclaimed stale processing track '{language}' (started {started})")
        return row.status == PENDING
