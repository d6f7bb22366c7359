"""
Pipeline Orchestrator
Turns a dubbing request into an uploaded, multi-language HLS bundle.

Flow per request::

    ResolveAsset -> DiffLanguages -> RenditionDispatch (per language, parallel)
                 -> ManifestRebuild -> Upload -> Invalidate -> Done

Per-language failures (provider or transcode) are recorded on the track
and reported in the result; they never stop sibling languages. The master
playlist is always rebuilt from the registry's ready tracks, never from
what happens to be on disk or in the bucket. An upload failure fails the
request.

All collaborators are passed in; ``build_orchestrator`` wires the
configured ones.
"""
import logging
import shutil
import tempfile
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from dubcast.dubbing.base import DubbingProvider, wait_for_job
from dubcast.exceptions import AssetNotFoundError, DubcastError, TrackStateError, ValidationError
from dubcast.hls import AudioEntry, ManifestParseError, MasterPlaylistCodec, VideoEntry, audio_uri, parse
from dubcast.languages import normalize_languages
from dubcast.media.artifact_pipeline import ArtifactPipeline
from dubcast.media.exceptions import TranscodeError
from dubcast.storage.exceptions import StorageError, UploadError

from .asset_lock import AssetLockManager
from .events import EventDispatcher, PipelineObserver, PipelineStage
from .remote_reconciler import RemoteReconciler
from .source_fetcher import fetch_source, validate_source
from .track_registry import (
    FAILED, PENDING, PROCESSING, READY,
    AssetRecord, AssetRepository, TrackRegistry,
)

logger = logging.getLogger(__name__)


# --------------------------- Request / result types ---------------------------

@dataclass
class DubbingRequest:
    target_languages: List[str]
    source_url: Optional[str] = None
    asset_id: Optional[str] = None
    section_id: Optional[str] = None
    title: Optional[str] = None
    include_origin: Optional[bool] = None


class LanguageStatus(str, Enum):
    READY = "ready"
    ALREADY_READY = "already_ready"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"


@dataclass
class LanguageOutcome:
    language: str
    status: LanguageStatus
    url: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    reused: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status in (LanguageStatus.READY, LanguageStatus.ALREADY_READY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "status": self.status.value,
            "url": self.url,
            "error": self.error,
            "error_type": self.error_type,
            "reused": self.reused,
        }


@dataclass
class OrchestrationResult:
    asset_id: str
    success: bool
    outcomes: List[LanguageOutcome] = field(default_factory=list)
    manifest_key: Optional[str] = None
    manifest_url: Optional[str] = None
    ready_languages: List[str] = field(default_factory=list)
    uploaded: bool = False
    invalidated: bool = False
    error: Optional[str] = None

    @property
    def succeeded_languages(self) -> List[str]:
        return [o.language for o in self.outcomes if o.succeeded]

    @property
    def failed_languages(self) -> List[str]:
        return [o.language for o in self.outcomes if o.status == LanguageStatus.FAILED]

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failed_languages)

    def outcome(self, language: str) -> Optional[LanguageOutcome]:
        return next((o for o in self.outcomes if o.language == language), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "success": self.success,
            "partial": self.partial,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "manifest_key": self.manifest_key,
            "manifest_url": self.manifest_url,
            "ready_languages": list(self.ready_languages),
            "uploaded": self.uploaded,
            "invalidated": self.invalidated,
            "error": self.error,
        }


@dataclass
class OrchestratorOptions:
    """Behaviour switches; ``from_settings`` reads them from config."""
    max_workers: int = 4
    work_dir: Optional[str] = None
    keep_work_dir: bool = False
    include_origin_track: bool = True
    origin_language: str = "origin"
    force_regenerate_video: bool = False
    reuse_remote_renditions: bool = True
    rebuild_on_noop: bool = False
    stale_processing_minutes: int = 120
    key_prefix_template: str = "assets/curriculumsection/{section_id}/"
    master_filename: str = "master.m3u8"
    poll_max_attempts: int = 120
    poll_interval_seconds: float = 5.0

    @classmethod
    def from_settings(cls) -> "OrchestratorOptions":
        from dubcast import settings

        return cls(
            max_workers=settings.get_pipeline_max_workers(),
            work_dir=settings.get_pipeline_work_dir(),
            keep_work_dir=settings.get_keep_work_dir(),
            include_origin_track=settings.get_include_origin_track(),
            origin_language=settings.get_origin_language(),
            force_regenerate_video=settings.get_force_regenerate_video(),
            reuse_remote_renditions=settings.get_reuse_remote_renditions(),
            rebuild_on_noop=settings.get_rebuild_on_noop(),
            stale_processing_minutes=settings.get_stale_processing_minutes(),
            key_prefix_template=settings.get_key_prefix_template(),
            master_filename=settings.get_master_filename(),
            poll_max_attempts=settings.get_dub_poll_max_attempts(),
            poll_interval_seconds=settings.get_dub_poll_interval_seconds(),
        )


class _SubmissionAudio:
    """Source audio for provider submission, extracted once per request."""

    def __init__(self, pipeline: ArtifactPipeline, source: Path, scratch_dir: Path):
        self.pipeline = pipeline
        self.source = source
        self.scratch_dir = scratch_dir
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._error: Optional[TranscodeError] = None

    def get(self) -> Path:
        with self._lock:
            if self._path is None and self._error is None:
                try:
                    self._path = self.pipeline.extract_submission_audio(self.source, self.scratch_dir)
                except TranscodeError as e:
                    self._error = e
            if self._error is not None:
                raise self._error
            return self._path


@dataclass
class _WorkContext:
    asset: AssetRecord
    source: Path
    tree: Path
    scratch: Path
    submission: _SubmissionAudio


# --------------------------- Orchestrator ---------------------------

class PipelineOrchestrator:
    """Composes registry, pipeline, provider, codec and reconciler."""

    def __init__(
        self,
        assets: AssetRepository,
        registry: TrackRegistry,
        reconciler: RemoteReconciler,
        provider: DubbingProvider,
        pipeline: ArtifactPipeline,
        codec: MasterPlaylistCodec,
        video_entry: VideoEntry,
        observer: Optional[PipelineObserver] = None,
        locks: Optional[AssetLockManager] = None,
        options: Optional[OrchestratorOptions] = None,
        source_fetcher: Callable[[str, Path], Path] = fetch_source,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.assets = assets
        self.registry = registry
        self.reconciler = reconciler
        self.provider = provider
        self.pipeline = pipeline
        self.codec = codec
        self.video_entry = video_entry
        self.events = EventDispatcher(observer)
        self.locks = locks or AssetLockManager()
        self.options = options or OrchestratorOptions()
        self.source_fetcher = source_fetcher
        self.sleep = sleep

    # ---- keys ----

    def _audio_key(self, asset: AssetRecord, language: str) -> str:
        return asset.key_prefix + audio_uri(language)

    def _video_key(self, asset: AssetRecord) -> str:
        return asset.key_prefix + self.video_entry.uri

    def _is_origin(self, language: str) -> bool:
        return language == self.options.origin_language

    def _remote_exists(self, key: str) -> bool:
        try:
            return self.reconciler.exists(key)
        except StorageError as e:
            logger.warning(f"Existence check failed for {key}, regenerating: {e}")
            return False

    # ---- ResolveAsset ----

    def _locations(self, asset_id: str, section_id: Optional[str]):
        prefix = self.options.key_prefix_template.format(
            section_id=section_id or asset_id, asset_id=asset_id,
        )
        if not prefix.endswith("/"):
            prefix += "/"
        return prefix, prefix + self.options.master_filename

    def find_asset(self, asset_id: Optional[str] = None, section_id: Optional[str] = None) -> AssetRecord:
        """
        Look up an existing asset.

        Raises:
            AssetNotFoundError: If neither key resolves
        """
        asset = None
        if asset_id:
            asset = self.assets.get(asset_id)
        elif section_id:
            asset = self.assets.get_by_section(str(section_id))
        else:
            raise ValidationError("asset_id or section_id is required", field="asset_id")
        if asset is None:
            raise AssetNotFoundError(f"Asset not found (asset_id={asset_id}, section_id={section_id})")
        return asset

    def resolve_asset(self, request: DubbingRequest) -> AssetRecord:
        """
        Find or create the asset for a request.

        An explicit asset id must exist. A section id is a stable key: the
        first request creates the asset, later ones reuse it. Without
        either, a new asset is always created.
        """
        # A replacement source is checked before the asset is touched
        source_url = validate_source(request.source_url) if request.source_url else None

        if request.asset_id:
            asset = self.find_asset(asset_id=request.asset_id)
        else:
            asset = self.assets.get_by_section(str(request.section_id)) if request.section_id else None
            if asset is None:
                new_id = str(uuid.uuid4())
                section_id = str(request.section_id) if request.section_id else None
                key_prefix, master_key = self._locations(new_id, section_id)
                asset = self.assets.create(
                    source_url=source_url or validate_source(request.source_url),
                    key_prefix=key_prefix,
                    master_key=master_key,
                    section_id=section_id,
                    title=request.title,
                    asset_id=new_id,
                )
                return asset

        if source_url and source_url != asset.source_url:
            asset = self.assets.update_source(asset.id, source_url)
        return asset

    # ---- DiffLanguages ----

    def _requested_languages(self, request: DubbingRequest) -> List[str]:
        languages = normalize_languages(request.target_languages)
        include_origin = self.options.include_origin_track if request.include_origin is None \
            else request.include_origin
        if include_origin and self.options.origin_language not in languages:
            languages.insert(0, self.options.origin_language)
        return languages

    def _prepare_tracks(self, asset: AssetRecord, missing: List[str]) -> Dict[str, LanguageOutcome]:
        """
        Bring every missing language to ``pending``.

        Failed rows are retried because the caller asked for them again.
        A processing row owned by a live request is left alone and
        reported as in progress; one older than the stale window is
        reclaimed.

        Returns:
            Outcomes for languages that will not be dispatched
        """
        skipped = {}
        stale_after = timedelta(minutes=self.options.stale_processing_minutes)
        for language in missing:
            track = self.registry.get(asset.id, language)
            if track is None:
                self.registry.upsert_pending(asset.id, language)
                self._track_event(asset, language, PENDING)
            elif track.status == FAILED:
                self.registry.retry(asset.id, language)
                self._track_event(asset, language, PENDING, previous=FAILED)
            elif track.status == PROCESSING:
                if self.registry.reclaim_stale(asset.id, language, stale_after):
                    self._track_event(asset, language, PENDING, previous=PROCESSING, reclaimed=True)
                else:
                    skipped[language] = LanguageOutcome(language, LanguageStatus.IN_PROGRESS)
        return skipped

    def _track_event(self, asset: AssetRecord, language: str, status: str, **detail) -> None:
        self.events.emit(PipelineStage.TRACK_STATE_CHANGED, asset.id, language, status=status, **detail)

    # ---- RenditionDispatch ----

    def _fetch_dubbed_media(self, ctx: _WorkContext, language: str, scratch_dir: Path) -> Path:
        self.events.emit(PipelineStage.BEFORE_EXTRACT, ctx.asset.id, language, source=str(ctx.source))
        submission = ctx.submission.get()

        self.events.emit(PipelineStage.BEFORE_PROVIDER_SUBMIT, ctx.asset.id, language,
                         provider=getattr(self.provider, "name", type(self.provider).__name__))
        job_id = self.provider.submit(submission.read_bytes(), language, filename=submission.name)
        self.registry.set_provider_job(ctx.asset.id, language, job_id)

        wait_for_job(
            self.provider, job_id, language,
            max_attempts=self.options.poll_max_attempts,
            interval_seconds=self.options.poll_interval_seconds,
            sleep=self.sleep,
        )

        scratch_dir.mkdir(parents=True, exist_ok=True)
        video = self.provider.fetch_video(job_id, language)
        if video:
            media_path, kind = scratch_dir / "dubbed.mp4", "video"
            media_path.write_bytes(video)
        else:
            media_path, kind = scratch_dir / "dubbed.mp3", "audio"
            media_path.write_bytes(self.provider.fetch_audio(job_id, language))
        self.events.emit(PipelineStage.PROVIDER_AUDIO_READY, ctx.asset.id, language,
                         job_id=job_id, kind=kind, bytes=media_path.stat().st_size)
        return media_path

    def _process_language(self, ctx: _WorkContext, language: str) -> LanguageOutcome:
        asset = ctx.asset
        try:
            self.registry.mark_processing(asset.id, language)
        except TrackStateError as e:
            # Another request claimed the row between diff and dispatch
            logger.info(f"[{asset.id}] Skipping '{language}': {e}")
            return LanguageOutcome(language, LanguageStatus.IN_PROGRESS)
        self._track_event(asset, language, PROCESSING)

        # From here on the row is ours: every exit must leave it ready or failed
        try:
            return self._render_language(ctx, language)
        except (DubcastError, OSError) as e:
            logger.error(f"[{asset.id}] Language '{language}' failed: {type(e).__name__}: {e}")
            return self._fail_language(asset, language, e)
        except Exception as e:
            logger.error(f"[{asset.id}] Language '{language}' failed unexpectedly: {e}", exc_info=True)
            return self._fail_language(asset, language, e)

    def _render_language(self, ctx: _WorkContext, language: str) -> LanguageOutcome:
        asset = ctx.asset
        audio_key = self._audio_key(asset, language)
        url = self.reconciler.public_url(audio_key)
        if self.options.reuse_remote_renditions and self._remote_exists(audio_key):
            self.events.emit(PipelineStage.RENDITION_SKIPPED, asset.id, language, key=audio_key)
            self.registry.mark_ready(asset.id, language, url)
            self._track_event(asset, language, READY, reused=True)
            return LanguageOutcome(language, LanguageStatus.READY, url=url, reused=True)

        scratch_dir = ctx.scratch / language
        if self._is_origin(language):
            media = ctx.source
        else:
            media = self._fetch_dubbed_media(ctx, language, scratch_dir)

        self.events.emit(PipelineStage.BEFORE_TRANSCODE, asset.id, language)
        self.pipeline.package_audio(language, media, scratch_dir, ctx.tree / "audio" / language)

        self.registry.mark_ready(asset.id, language, url)
        self._track_event(asset, language, READY)
        return LanguageOutcome(language, LanguageStatus.READY, url=url)

    def _fail_language(self, asset: AssetRecord, language: str, error: Exception) -> LanguageOutcome:
        reason = f"{type(error).__name__}: {error}"
        self.registry.mark_failed(asset.id, language, reason)
        self._track_event(asset, language, FAILED, error=reason)
        return LanguageOutcome(language, LanguageStatus.FAILED, error=str(error),
                               error_type=type(error).__name__)

    def _process_video(self, ctx: _WorkContext) -> Optional[str]:
        """Package the video rendition unless it is already uploaded. Returns an error or None."""
        video_key = self._video_key(ctx.asset)
        if not self.options.force_regenerate_video and self._remote_exists(video_key):
            self.events.emit(PipelineStage.RENDITION_SKIPPED, ctx.asset.id, None, key=video_key)
            return None
        self.events.emit(PipelineStage.BEFORE_TRANSCODE, ctx.asset.id, None, rendition="video")
        try:
            self.pipeline.package_video(ctx.source, ctx.tree / Path(self.video_entry.uri).parent)
        except (TranscodeError, OSError) as e:
            logger.error(f"[{ctx.asset.id}] Video rendition failed: {e}")
            return str(e)
        return None

    # ---- ManifestRebuild / Upload / Invalidate ----

    def _remote_languages(self, asset: AssetRecord) -> Optional[Set[str]]:
        """Languages advertised by the current remote playlist, None if absent or unreadable."""
        try:
            text = self.reconciler.fetch_manifest_text(asset.master_key)
        except StorageError as e:
            logger.warning(f"[{asset.id}] Cannot read remote master playlist: {e}")
            return None
        if text is None:
            return None
        try:
            return parse(text).languages
        except ManifestParseError as e:
            self.events.emit(PipelineStage.MANIFEST_REBUILD_FORCED, asset.id, None, reason=str(e))
            return None

    def _build_manifest(self, asset: AssetRecord) -> Tuple[str, List[str]]:
        ready = [track.language for track in self.registry.list_ready(asset.id)]
        text = self.codec.build_for_languages(self.video_entry, ready)
        self.events.emit(PipelineStage.MANIFEST_REBUILT, asset.id, None, languages=ready)
        return text, ready

    def _publish(self, asset: AssetRecord, tree: Path, result: OrchestrationResult,
                 write_master: bool = True) -> OrchestrationResult:
        """Rebuild, upload and invalidate under the asset's writer lock."""
        with self.locks.hold(asset.id):
            remote = self._remote_languages(asset)
            if write_master:
                text, ready = self._build_manifest(asset)
                result.ready_languages = ready
                if remote is not None and remote != set(ready):
                    logger.info(f"[{asset.id}] Remote playlist drifted: {sorted(remote)} -> {ready}")
                (tree / self.options.master_filename).write_text(text, encoding="utf-8")

            self.events.emit(PipelineStage.BEFORE_UPLOAD, asset.id, None, prefix=asset.key_prefix)
            try:
                keys = self.reconciler.upload_tree(tree, asset.key_prefix)
            except UploadError as e:
                logger.error(f"[{asset.id}] Upload failed: {e}")
                result.success = False
                result.error = f"Upload failed: {e}"
                return result
            result.uploaded = True
            self.events.emit(PipelineStage.UPLOAD_COMPLETE, asset.id, None, files=len(keys))

            if write_master:
                result.manifest_url = self.reconciler.public_url(asset.master_key)
                result.invalidated = self.reconciler.invalidate(asset.master_key)
                self.events.emit(PipelineStage.INVALIDATED, asset.id, None, ok=result.invalidated)
        return result

    def _make_workspace(self, asset: AssetRecord) -> Path:
        if self.options.work_dir:
            Path(self.options.work_dir).mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"dubcast-{asset.id[:8]}-", dir=self.options.work_dir))

    def _cleanup(self, root: Path) -> None:
        if self.options.keep_work_dir:
            logger.info(f"Keeping work directory {root}")
            return
        shutil.rmtree(root, ignore_errors=True)

    # ---- Public operations ----

    def run(self, request: DubbingRequest) -> OrchestrationResult:
        """
        Process a dubbing request end to end.

        Raises:
            ValidationError: Bad languages or source, before any side effect
            AssetNotFoundError: Unknown ``asset_id``
            SourceError: The source could not be downloaded
        """
        requested = self._requested_languages(request)

        asset = self.resolve_asset(request)
        self.events.emit(PipelineStage.ASSET_RESOLVED, asset.id, None,
                         section_id=asset.section_id, master_key=asset.master_key)

        missing = self.registry.diff(asset.id, requested)
        self.events.emit(PipelineStage.LANGUAGES_DIFFED, asset.id, None,
                         requested=requested, missing=missing)
        outcomes: Dict[str, LanguageOutcome] = {}
        for track in self.registry.list_ready(asset.id):
            if track.language in requested and track.language not in missing:
                outcomes[track.language] = LanguageOutcome(
                    track.language, LanguageStatus.ALREADY_READY, url=track.url,
                )

        outcomes.update(self._prepare_tracks(asset, missing))
        dispatch = [language for language in missing if language not in outcomes]

        result = OrchestrationResult(
            asset_id=asset.id, success=True, manifest_key=asset.master_key,
        )

        if not dispatch and not self.options.rebuild_on_noop:
            # Nothing to produce: leave the playlist and bucket untouched
            result.outcomes = [outcomes[language] for language in requested]
            result.ready_languages = [t.language for t in self.registry.list_ready(asset.id)]
            result.manifest_url = self.reconciler.public_url(asset.master_key)
            self.events.emit(PipelineStage.DONE, asset.id, None, fast_path=True)
            return result

        root = self._make_workspace(asset)
        try:
            tree, scratch = root / "tree", root / "scratch"
            tree.mkdir(parents=True)
            video_error = None
            if dispatch:
                source = self.source_fetcher(request.source_url or asset.source_url, scratch / "_source")
                ctx = _WorkContext(
                    asset=asset, source=source, tree=tree, scratch=scratch,
                    submission=_SubmissionAudio(self.pipeline, source, scratch / "_submit"),
                )
                with ThreadPoolExecutor(max_workers=max(1, self.options.max_workers)) as executor:
                    video_future = executor.submit(self._process_video, ctx)
                    futures = {
                        language: executor.submit(self._process_language, ctx, language)
                        for language in dispatch
                    }
                    # Leaving the block joins every unit before the rebuild
                video_error = video_future.result()
                for language, future in futures.items():
                    outcomes[language] = future.result()

            result.outcomes = [outcomes[language] for language in requested]

            if video_error:
                # Playlist left as is: there is no video rendition to reference
                result.success = False
                result.error = f"Video rendition failed: {video_error}"
                self._publish(asset, tree, result, write_master=False)
            else:
                self._publish(asset, tree, result)
                if dispatch and not any(outcomes[language].succeeded for language in dispatch):
                    result.success = False
                    result.error = result.error or "All dispatched languages failed"
        finally:
            self._cleanup(root)

        self.events.emit(PipelineStage.DONE, asset.id, None, success=result.success,
                         failed=result.failed_languages)
        return result

    def refresh_manifest(self, asset_id: Optional[str] = None,
                         section_id: Optional[str] = None) -> OrchestrationResult:
        """Rebuild the master playlist from the registry alone, upload it and invalidate."""
        asset = self.find_asset(asset_id=asset_id, section_id=section_id)
        self.events.emit(PipelineStage.ASSET_RESOLVED, asset.id, None, master_key=asset.master_key)
        result = OrchestrationResult(asset_id=asset.id, success=True, manifest_key=asset.master_key)

        with self.locks.hold(asset.id):
            self._remote_languages(asset)
            text, ready = self._build_manifest(asset)
            result.ready_languages = ready
            result.outcomes = [
                LanguageOutcome(t.language, LanguageStatus.ALREADY_READY, url=t.url)
                for t in self.registry.list_ready(asset.id)
            ]
            self.events.emit(PipelineStage.BEFORE_UPLOAD, asset.id, None, key=asset.master_key)
            try:
                self.reconciler.upload_manifest(asset.master_key, text)
            except UploadError as e:
                result.success = False
                result.error = f"Upload failed: {e}"
            else:
                result.uploaded = True
                result.manifest_url = self.reconciler.public_url(asset.master_key)
                self.events.emit(PipelineStage.UPLOAD_COMPLETE, asset.id, None, files=1)
                result.invalidated = self.reconciler.invalidate(asset.master_key)
                self.events.emit(PipelineStage.INVALIDATED, asset.id, None, ok=result.invalidated)

        self.events.emit(PipelineStage.DONE, asset.id, None, success=result.success)
        return result

    def add_audio_track(self, language: str, audio_path: Path, asset_id: Optional[str] = None,
                        section_id: Optional[str] = None) -> OrchestrationResult:
        """
        Package an operator-supplied audio file as one language and patch the playlist.

        The remote playlist is patched in place; when it is missing or
        cannot be parsed the playlist is rebuilt from the registry instead.
        """
        language = normalize_languages([language])[0]
        audio_path = Path(audio_path)
        if not audio_path.is_file():
            raise ValidationError(f"Audio file not found: {audio_path}", field="audio_path")

        asset = self.find_asset(asset_id=asset_id, section_id=section_id)
        self.events.emit(PipelineStage.ASSET_RESOLVED, asset.id, language, master_key=asset.master_key)
        result = OrchestrationResult(asset_id=asset.id, success=True, manifest_key=asset.master_key)

        existing = self.registry.get(asset.id, language)
        if existing is not None and existing.status == READY:
            outcome = LanguageOutcome(language, LanguageStatus.ALREADY_READY, url=existing.url)
            root = None
        else:
            skipped = self._prepare_tracks(asset, [language])
            if language in skipped:
                result.outcomes = [skipped[language]]
                self.events.emit(PipelineStage.DONE, asset.id, language, success=True)
                return result
            root = self._make_workspace(asset)

        try:
            if root is not None:
                tree = root / "tree"
                tree.mkdir(parents=True)
                try:
                    self.registry.mark_processing(asset.id, language)
                except TrackStateError as e:
                    logger.info(f"[{asset.id}] Skipping '{language}': {e}")
                    result.outcomes = [LanguageOutcome(language, LanguageStatus.IN_PROGRESS)]
                    self.events.emit(PipelineStage.DONE, asset.id, language, success=True)
                    return result
                self._track_event(asset, language, PROCESSING)
                self.events.emit(PipelineStage.BEFORE_TRANSCODE, asset.id, language)
                try:
                    self.pipeline.package_audio(language, audio_path, root / "scratch" / language,
                                                tree / "audio" / language)
                except TranscodeError as e:
                    self.registry.mark_failed(asset.id, language, f"TranscodeError: {e}")
                    self._track_event(asset, language, FAILED, error=str(e))
                    result.outcomes = [LanguageOutcome(language, LanguageStatus.FAILED, error=str(e),
                                                       error_type=type(e).__name__)]
                    result.success = False
                    result.error = str(e)
                    return result

                self.events.emit(PipelineStage.BEFORE_UPLOAD, asset.id, language, prefix=asset.key_prefix)
                try:
                    keys = self.reconciler.upload_tree(tree, asset.key_prefix)
                except UploadError as e:
                    self.registry.mark_failed(asset.id, language, f"UploadError: {e}")
                    self._track_event(asset, language, FAILED, error=str(e))
                    result.outcomes = [LanguageOutcome(language, LanguageStatus.FAILED, error=str(e),
                                                       error_type=type(e).__name__)]
                    result.success = False
                    result.error = f"Upload failed: {e}"
                    return result
                self.events.emit(PipelineStage.UPLOAD_COMPLETE, asset.id, language, files=len(keys))

                url = self.reconciler.public_url(self._audio_key(asset, language))
                self.registry.mark_ready(asset.id, language, url)
                self._track_event(asset, language, READY)
                outcome = LanguageOutcome(language, LanguageStatus.READY, url=url)

            result.outcomes = [outcome]
            self._patch_manifest(asset, language, result)
        finally:
            if root is not None:
                self._cleanup(root)

        self.events.emit(PipelineStage.DONE, asset.id, language, success=result.success)
        return result

    def _patch_manifest(self, asset: AssetRecord, language: str, result: OrchestrationResult) -> None:
        entry = AudioEntry(
            language=language,
            name=self.codec.origin_name if self._is_origin(language) else language,
            uri=audio_uri(language),
            group_id=self.codec.group_id,
            is_default=False,
        )
        with self.locks.hold(asset.id):
            try:
                existing = self.reconciler.fetch_manifest_text(asset.master_key)
            except StorageError as e:
                logger.warning(f"[{asset.id}] Cannot read remote master playlist: {e}")
                existing = None

            text = None
            if existing is not None:
                try:
                    text = self.codec.append_audio_if_absent(existing, entry)
                except ManifestParseError as e:
                    self.events.emit(PipelineStage.MANIFEST_REBUILD_FORCED, asset.id, language, reason=str(e))
            if text is None:
                text, ready = self._build_manifest(asset)
                result.ready_languages = ready
            else:
                result.ready_languages = sorted(parse(text).languages)
                self.events.emit(PipelineStage.MANIFEST_REBUILT, asset.id, language, patched=True)

            try:
                self.reconciler.upload_manifest(asset.master_key, text)
            except UploadError as e:
                result.success = False
                result.error = f"Upload failed: {e}"
                return
            result.uploaded = True
            result.manifest_url = self.reconciler.public_url(asset.master_key)
            result.invalidated = self.reconciler.invalidate(asset.master_key)
            self.events.emit(PipelineStage.INVALIDATED, asset.id, language, ok=result.invalidated)


# --------------------------- Wiring ---------------------------

def default_video_entry() -> VideoEntry:
    from dubcast import settings

    video = settings.get_hls_video_config()
    return VideoEntry(
        bandwidth=int(video['bandwidth']),
        resolution=str(video['resolution']),
        codecs=str(video['codecs']),
        uri=str(video['uri']),
        audio_group=settings.get_hls_group_id(),
    )


def build_orchestrator(database, storage=None, invalidator=None, provider=None,
                       observer: Optional[PipelineObserver] = None,
                       locks: Optional[AssetLockManager] = None) -> PipelineOrchestrator:
    """Wire an orchestrator from configuration; any collaborator may be passed in."""
    from dubcast import settings
    from dubcast.dubbing.factory import create_dubbing_provider
    from dubcast.media.ffmpeg_utils import TranscodeProfile
    from dubcast.storage.cdn import create_invalidator
    from dubcast.storage.factory import create_storage_backend

    reconciler = RemoteReconciler(
        storage or create_storage_backend(),
        invalidator or create_invalidator(),
        master_filename=settings.get_master_filename(),
    )
    return PipelineOrchestrator(
        assets=AssetRepository(database),
        registry=TrackRegistry(database),
        reconciler=reconciler,
        provider=provider or create_dubbing_provider(),
        pipeline=ArtifactPipeline(TranscodeProfile.from_settings()),
        codec=MasterPlaylistCodec.from_settings(),
        video_entry=default_video_entry(),
        observer=observer,
        locks=locks,
        options=OrchestratorOptions.from_settings(),
    )
