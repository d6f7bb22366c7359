"""
Pipeline progress events.

Events are delivered in order to one observer. Per-language units run on
worker threads, so delivery is serialized with a lock; an observer that
raises is logged and otherwise ignored.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    ASSET_RESOLVED = "asset_resolved"
    LANGUAGES_DIFFED = "languages_diffed"
    BEFORE_EXTRACT = "before_extract"
    BEFORE_PROVIDER_SUBMIT = "before_provider_submit"
    PROVIDER_AUDIO_READY = "provider_audio_ready"
    BEFORE_TRANSCODE = "before_transcode"
    TRACK_STATE_CHANGED = "track_state_changed"
    RENDITION_SKIPPED = "rendition_skipped"
    MANIFEST_REBUILD_FORCED = "manifest_rebuild_forced"
    MANIFEST_REBUILT = "manifest_rebuilt"
    BEFORE_UPLOAD = "before_upload"
    UPLOAD_COMPLETE = "upload_complete"
    INVALIDATED = "invalidated"
    DONE = "done"


@dataclass(frozen=True)
class PipelineEvent:
    stage: PipelineStage
    asset_id: Optional[str] = None
    language: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineObserver:
    """Receives pipeline events. The base implementation ignores them."""

    def on_event(self, event: PipelineEvent) -> None:
        pass


class LoggingObserver(PipelineObserver):
    """Default observer: one log line per event."""

    def on_event(self, event: PipelineEvent) -> None:
        scope = event.asset_id or "-"
        if event.language:
            scope = f"{scope}/{event.language}"
        logger.info(f"[{scope}] {event.stage.value} {event.detail or ''}".rstrip())


class RecordingObserver(PipelineObserver):
    """Keeps every event in delivery order."""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def on_event(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def stages(self, language: Optional[str] = None) -> List[PipelineStage]:
        return [e.stage for e in self.events if language is None or e.language == language]


class EventDispatcher:
    """Serializes delivery to an observer across worker threads."""

    def __init__(self, observer: Optional[PipelineObserver] = None):
        self.observer = observer or LoggingObserver()
        self._lock = threading.Lock()

    def emit(self, stage: PipelineStage, asset_id: Optional[str] = None,
             language: Optional[str] = None, **detail: Any) -> None:
        event = PipelineEvent(stage=stage, asset_id=asset_id, language=language, detail=detail)
        with self._lock:
            try:
                self.observer.on_event(event)
            except Exception as e:  # observer errors are logged only
                logger.error(f"Pipeline observer failed on {stage.value}: {e}", exc_info=True)
