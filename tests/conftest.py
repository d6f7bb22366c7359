"""
Shared fixtures: a file-backed SQLite registry, LocalStorage as the object
store, a scripted dubbing provider and an ffmpeg double that writes the
files a real run would leave behind.
"""

import re
import threading
from pathlib import Path
from typing import List, Optional

import pytest

from dubcast.db.session import DatabaseManager
from dubcast.dubbing.base import DubbingJob, DubbingJobStatus, DubbingProvider
from dubcast.dubbing.exceptions import ProviderError
from dubcast.hls import MasterPlaylistCodec, VideoEntry
from dubcast.media.artifact_pipeline import ArtifactPipeline
from dubcast.media.exceptions import TranscodeError
from dubcast.media.ffmpeg_utils import TranscodeProfile
from dubcast.services.events import RecordingObserver
from dubcast.services.orchestrator import OrchestratorOptions, PipelineOrchestrator
from dubcast.services.remote_reconciler import RemoteReconciler
from dubcast.services.track_registry import AssetRepository, TrackRegistry
from dubcast.storage.cdn import CacheInvalidator
from dubcast.storage.local import LocalStorage

VIDEO_ENTRY = VideoEntry(
    bandwidth=2500000,
    resolution="1920x1080",
    codecs="avc1.4d401f,mp4a.40.2",
    uri="video/video.m3u8",
)


class FakeFfmpeg:
    """
    Stands in for ``run_ffmpeg``.

    HLS invocations (output ``*.m3u8``) create an init segment, the playlist
    and two media segments in ``cwd``; other invocations create their output
    file. A call whose arguments or cwd contain one of ``fail_markers``
    raises TranscodeError; one containing a ``skip_init_markers`` entry
    "succeeds" without writing init.mp4.
    """

    def __init__(self):
        self.calls: List[dict] = []
        self.fail_markers: List[str] = []
        self.skip_init_markers: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, args, cwd=None, timeout=None, ffmpeg_path="ffmpeg", step=None):
        with self._lock:
            self.calls.append({"args": list(args), "cwd": cwd, "step": step})
        haystack = " ".join(str(a) for a in args) + f" {cwd}"
        if any(marker in haystack for marker in self.fail_markers):
            raise TranscodeError("ffmpeg exited with code 1", step=step, stderr="boom")

        output = str(args[-1])
        if output.endswith(".m3u8"):
            out_dir = Path(cwd)
            pattern = args[args.index("-hls_segment_filename") + 1]
            prefix = re.sub(r"%0\d+d\.m4s$", "", pattern)
            if not any(marker in haystack for marker in self.skip_init_markers):
                (out_dir / "init.mp4").write_bytes(b"init")
            for index in range(2):
                (out_dir / f"{prefix}{index:03d}.m4s").write_bytes(b"segment")
            (out_dir / output).write_text("#EXTM3U\n", encoding="utf-8")
        else:
            Path(output).parent.mkdir(parents=True, exist_ok=True)
            Path(output).write_bytes(b"media")

    def steps(self) -> List[Optional[str]]:
        return [call["step"] for call in self.calls]


class FakeDubbingProvider(DubbingProvider):
    """Completes every job on the first poll unless told otherwise."""

    name = "fake"

    def __init__(self):
        self.submitted: List[str] = []
        self.failing = set()        # poll reports failed
        self.never_finish = set()   # poll reports in progress forever
        self.reject = set()         # submit raises
        self.video_output = False
        self._lock = threading.Lock()

    def submit(self, audio: bytes, target_language: str, filename: str = "source.m4a") -> str:
        if target_language in self.reject:
            raise ProviderError("submission rejected", language=target_language, status_code=400)
        with self._lock:
            self.submitted.append(target_language)
        return f"job-{target_language}"

    def poll(self, job_id: str) -> DubbingJob:
        language = job_id.split("-", 1)[1]
        if language in self.failing:
            return DubbingJob(job_id, DubbingJobStatus.FAILED, [language], error="voice cloning failed",
                              raw_status="failed")
        if language in self.never_finish:
            return DubbingJob(job_id, DubbingJobStatus.IN_PROGRESS, [language], raw_status="dubbing")
        return DubbingJob(job_id, DubbingJobStatus.COMPLETED, [language], raw_status="dubbed")

    def fetch_audio(self, job_id: str, language: str) -> bytes:
        return f"dubbed audio {language}".encode()

    def fetch_video(self, job_id: str, language: str) -> Optional[bytes]:
        if self.video_output:
            return f"dubbed video {language}".encode()
        return None

    def validate_config(self) -> bool:
        return True


class RecordingInvalidator(CacheInvalidator):
    def __init__(self):
        self.paths: List[List[str]] = []

    def invalidate_paths(self, paths: List[str]) -> Optional[str]:
        self.paths.append(list(paths))
        return f"INV{len(self.paths)}"


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite so worker threads get their own connections."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'dubcast-test.db'}")
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def assets(database):
    return AssetRepository(database)


@pytest.fixture
def registry(database):
    return TrackRegistry(database)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "bucket", public_base_url="https://cdn.example.com")


@pytest.fixture
def invalidator():
    return RecordingInvalidator()


@pytest.fixture
def reconciler(storage, invalidator):
    return RemoteReconciler(storage, invalidator, upload_workers=2)


@pytest.fixture
def ffmpeg():
    return FakeFfmpeg()


@pytest.fixture
def provider():
    return FakeDubbingProvider()


@pytest.fixture
def pipeline(ffmpeg):
    return ArtifactPipeline(TranscodeProfile(), runner=ffmpeg, prober=None)


@pytest.fixture
def codec():
    return MasterPlaylistCodec()


@pytest.fixture
def source_video(tmp_path):
    path = tmp_path / "source" / "lesson.mp4"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"source video")
    return path


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def make_orchestrator(tmp_path, assets, registry, reconciler, provider, pipeline, codec, observer):
    """Build an orchestrator over the fixtures; keyword arguments override options."""

    def _make(**overrides) -> PipelineOrchestrator:
        options = dict(
            max_workers=4,
            work_dir=str(tmp_path / "work"),
            poll_max_attempts=3,
            poll_interval_seconds=0,
        )
        options.update(overrides)
        return PipelineOrchestrator(
            assets=assets,
            registry=registry,
            reconciler=reconciler,
            provider=provider,
            pipeline=pipeline,
            codec=codec,
            video_entry=VIDEO_ENTRY,
            observer=observer,
            options=OrchestratorOptions(**options),
            sleep=lambda seconds: None,
        )

    return _make
