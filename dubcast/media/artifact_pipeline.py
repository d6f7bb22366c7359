"""
Artifact Pipeline
Packages one rendition (video, or one language's audio) into fMP4 HLS.

Audio steps, each an ffmpeg invocation::

    source --decode--> scratch/source.wav --loudnorm--> scratch/aligned.wav --segment--> out/

Every language gets its own scratch directory and its own output
directory, so units for different languages can run concurrently. A unit
only succeeds when the init segment, the child playlist and at least one
media segment exist afterwards; ffmpeg exiting zero is not enough.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .exceptions import TranscodeError
from .ffmpeg_utils import (
    AUDIO_PLAYLIST_NAME,
    INIT_SEGMENT_NAME,
    VIDEO_PLAYLIST_NAME,
    TranscodeProfile,
    has_audio_stream,
    has_video_stream,
    make_audio_decode_args,
    make_audio_hls_args,
    make_loudnorm_args,
    make_submission_audio_args,
    make_video_hls_args,
    probe_media,
    run_ffmpeg,
)

logger = logging.getLogger(__name__)


@dataclass
class RenditionArtifacts:
    """Files produced for one rendition."""
    directory: Path
    playlist: Path
    init_segment: Path
    segments: List[Path] = field(default_factory=list)


class ArtifactPipeline:
    """Per-rendition ffmpeg orchestration."""

    def __init__(self, profile: Optional[TranscodeProfile] = None,
                 runner: Callable[..., Any] = run_ffmpeg,
                 prober: Optional[Callable[[Path], Dict[str, Any]]] = probe_media):
        """
        Args:
            profile: Transcode settings (defaults to the built-in profile)
            runner: ffmpeg runner, ``runner(args, cwd=, timeout=, ffmpeg_path=, step=)``
            prober: Source probe; None skips stream checks
        """
        self.profile = profile or TranscodeProfile()
        self.runner = runner
        self.prober = prober

    def _run(self, args: List[str], step: str, language: Optional[str] = None,
             cwd: Optional[Path] = None) -> None:
        try:
            self.runner(
                args,
                cwd=cwd,
                timeout=self.profile.timeout_seconds,
                ffmpeg_path=self.profile.ffmpeg_path,
                step=step,
            )
        except TranscodeError as e:
            if e.language is None and language is not None:
                raise TranscodeError(e.message, step=e.step or step, language=language,
                                     stderr=e.stderr) from e
            raise

    def _check_source(self, source: Path, need_audio: bool, need_video: bool,
                      language: Optional[str] = None) -> None:
        if not Path(source).is_file():
            raise TranscodeError(f"Source file not found: {source}", step="probe", language=language)
        if self.prober is None:
            return
        probe = self.prober(Path(source))
        if need_audio and not has_audio_stream(probe):
            raise TranscodeError(f"No audio stream in {source}", step="probe", language=language)
        if need_video and not has_video_stream(probe):
            raise TranscodeError(f"No video stream in {source}", step="probe", language=language)

    @staticmethod
    def verify_outputs(out_dir: Path, playlist_name: str, segment_prefix: str,
                       language: Optional[str] = None) -> RenditionArtifacts:
        """
        Confirm a rendition directory is complete.

        Raises:
            TranscodeError: If the init segment, the playlist, or every
                media segment is missing
        """
        out_dir = Path(out_dir)
        init_segment = out_dir / INIT_SEGMENT_NAME
        playlist = out_dir / playlist_name
        if not init_segment.is_file():
            raise TranscodeError(f"{INIT_SEGMENT_NAME} missing in {out_dir}", step="verify", language=language)
        if not playlist.is_file():
            raise TranscodeError(f"{playlist_name} missing in {out_dir}", step="verify", language=language)
        segments = sorted(out_dir.glob(f"{segment_prefix}*.m4s"))
        if not segments:
            raise TranscodeError(f"No media segments in {out_dir}", step="verify", language=language)
        return RenditionArtifacts(directory=out_dir, playlist=playlist,
                                  init_segment=init_segment, segments=segments)

    def package_video(self, source: Path, out_dir: Path) -> RenditionArtifacts:
        """Encode the video rendition into ``out_dir`` (``video/`` in the bundle)."""
        out_dir = Path(out_dir)
        self._check_source(source, need_audio=False, need_video=True)
        out_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Packaging video rendition from {source}")
        self._run(make_video_hls_args(source, self.profile), step="video_segment", cwd=out_dir)
        artifacts = self.verify_outputs(out_dir, VIDEO_PLAYLIST_NAME, "v_")
        logger.info(f"Video rendition ready: {len(artifacts.segments)} segment(s)")
        return artifacts

    def extract_audio(self, source: Path, scratch_dir: Path, language: Optional[str] = None) -> Path:
        """Decode the source's audio to stereo PCM in the scratch directory."""
        scratch_dir = Path(scratch_dir)
        scratch_dir.mkdir(parents=True, exist_ok=True)
        self._check_source(source, need_audio=True, need_video=False, language=language)
        out_wav = scratch_dir / "source.wav"
        self._run(make_audio_decode_args(source, out_wav, self.profile), step="decode", language=language)
        return out_wav

    def extract_submission_audio(self, source: Path, scratch_dir: Path) -> Path:
        """Encode the source audio once for upload to the dubbing provider."""
        scratch_dir = Path(scratch_dir)
        scratch_dir.mkdir(parents=True, exist_ok=True)
        self._check_source(source, need_audio=True, need_video=False)
        out_path = scratch_dir / "submit.m4a"
        self._run(make_submission_audio_args(source, out_path), step="extract")
        if not out_path.is_file():
            raise TranscodeError(f"Extracted audio missing: {out_path}", step="extract")
        return out_path

    def normalize_audio(self, in_wav: Path, scratch_dir: Path, language: Optional[str] = None) -> Path:
        out_wav = Path(scratch_dir) / "aligned.wav"
        self._run(make_loudnorm_args(in_wav, out_wav, self.profile), step="loudnorm", language=language)
        if not out_wav.is_file():
            raise TranscodeError(f"Normalized audio missing: {out_wav}", step="loudnorm", language=language)
        return out_wav

    def segment_audio(self, in_wav: Path, out_dir: Path, language: Optional[str] = None) -> RenditionArtifacts:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        self._run(make_audio_hls_args(in_wav, self.profile), step="audio_segment",
                  language=language, cwd=out_dir)
        return self.verify_outputs(out_dir, AUDIO_PLAYLIST_NAME, "a_", language=language)

    def package_audio(self, language: str, source: Path, scratch_dir: Path,
                      out_dir: Path) -> RenditionArtifacts:
        """
        Run the full audio unit for one language.

        Args:
            language: Language code, used for error reporting
            source: Dubbed audio, dubbed video, or the original video for
                the origin track
            scratch_dir: Per-language intermediate directory (not uploaded)
            out_dir: Rendition directory inside the upload tree

        Returns:
            RenditionArtifacts for the audio rendition

        Raises:
            TranscodeError: If any step fails or leaves output missing
        """
        logger.info(f"[{language}] Packaging audio rendition from {Path(source).name}")
        decoded = self.extract_audio(source, scratch_dir, language=language)
        normalized = self.normalize_audio(decoded, scratch_dir, language=language)
        artifacts = self.segment_audio(normalized, out_dir, language=language)
        logger.info(f"[{language}] Audio rendition ready: {len(artifacts.segments)} segment(s)")
        return artifacts
