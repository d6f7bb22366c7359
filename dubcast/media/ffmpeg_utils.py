"""
FFmpeg utilities for Dubcast

Goals
- Freeze the transcoder flag contract in one place: fixed segment duration,
  fMP4 segments with an explicit init segment, zero-padded segment names,
  independent segments
- Force audio to stereo 48k with a single loudness target
- Run ffmpeg as a subprocess with a timeout and report failures as
  TranscodeError with the captured stderr
- Probe inputs through ffmpeg-python

Argument builders return plain lists so they can be asserted on in tests
without running ffmpeg.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import ffmpeg

from .exceptions import TranscodeError

logger = logging.getLogger(__name__)

INIT_SEGMENT_NAME = "init.mp4"
VIDEO_PLAYLIST_NAME = "video.m3u8"
AUDIO_PLAYLIST_NAME = "audio.m3u8"
VIDEO_SEGMENT_PATTERN = "v_%03d.m4s"
AUDIO_SEGMENT_PATTERN = "a_%03d.m4s"


# --------------------------- Profiles ---------------------------

@dataclass(frozen=True)
class AudioProfile:
    codec: str = "aac"
    bitrate: str = "128k"
    sample_rate: int = 48000
    channels: int = 2
    loudnorm: str = "I=-16:LRA=11:TP=-1.5"


@dataclass(frozen=True)
class VideoProfile:
    codec: str = "libx264"
    profile: str = "main"
    level: str = "4.1"
    preset: str = "veryfast"
    crf: int = 23
    keyint: int = 48


@dataclass(frozen=True)
class TranscodeProfile:
    """Everything the argument builders need."""
    segment_duration: int = 4
    audio: AudioProfile = field(default_factory=AudioProfile)
    video: VideoProfile = field(default_factory=VideoProfile)
    ffmpeg_path: str = "ffmpeg"
    timeout_seconds: Optional[int] = 3600

    @classmethod
    def from_settings(cls) -> "TranscodeProfile":
        from dubcast import settings

        audio = settings.get_audio_transcode_config()
        video = settings.get_video_transcode_config()
        return cls(
            segment_duration=settings.get_hls_segment_duration(),
            audio=AudioProfile(
                codec=audio['codec'],
                bitrate=str(audio['bitrate']),
                sample_rate=int(audio['sample_rate']),
                channels=int(audio['channels']),
                loudnorm=audio['loudnorm'],
            ),
            video=VideoProfile(
                codec=video['codec'],
                profile=video['profile'],
                level=str(video['level']),
                preset=video['preset'],
                crf=int(video['crf']),
                keyint=int(video['keyint']),
            ),
            ffmpeg_path=settings.get_ffmpeg_path(),
            timeout_seconds=settings.get_transcode_timeout_seconds(),
        )


# --------------------------- Argument builders ---------------------------

def make_hls_output_args(segment_duration: int, segment_pattern: str) -> List[str]:
    """Output options shared by every HLS rendition."""
    return [
        "-start_number", "0",
        "-hls_time", str(segment_duration),
        "-hls_playlist_type", "vod",
        "-hls_segment_type", "fmp4",
        "-hls_fmp4_init_filename", INIT_SEGMENT_NAME,
        "-hls_flags", "independent_segments",
        "-hls_segment_filename", segment_pattern,
    ]


def make_video_hls_args(source: Path | str, profile: TranscodeProfile) -> List[str]:
    """
    Encode the first video stream into fMP4 HLS.

    Runs with the video output directory as working directory; the GOP is
    closed and aligned to the segment duration so segments stand alone.
    """
    v = profile.video
    return [
        "-y",
        "-i", str(Path(source).resolve()),
        "-map", "0:v:0",
        "-c:v", v.codec,
        "-profile:v", v.profile,
        "-level", v.level,
        "-preset", v.preset,
        "-crf", str(v.crf),
        "-x264-params", f"keyint={v.keyint}:min-keyint={v.keyint}:scenecut=0",
        *make_hls_output_args(profile.segment_duration, VIDEO_SEGMENT_PATTERN),
        VIDEO_PLAYLIST_NAME,
    ]


def make_audio_decode_args(source: Path | str, out_wav: Path | str, profile: TranscodeProfile) -> List[str]:
    """Drop video and decode the first audio stream to PCM."""
    a = profile.audio
    return [
        "-y",
        "-i", str(source),
        "-vn",
        "-acodec", "pcm_s16le",
        "-ar", str(a.sample_rate),
        "-ac", str(a.channels),
        str(out_wav),
    ]


def make_submission_audio_args(source: Path | str, out_path: Path | str) -> List[str]:
    """Compact AAC copy of the source audio, sent to the dubbing provider."""
    return [
        "-y",
        "-i", str(source),
        "-vn",
        "-c:a", "aac",
        "-b:a", "192k",
        str(out_path),
    ]


def make_loudnorm_args(in_wav: Path | str, out_wav: Path | str, profile: TranscodeProfile) -> List[str]:
    a = profile.audio
    return [
        "-y",
        "-i", str(in_wav),
        "-af", f"loudnorm={a.loudnorm}",
        "-ar", str(a.sample_rate),
        "-ac", str(a.channels),
        str(out_wav),
    ]


def make_audio_hls_args(in_wav: Path | str, profile: TranscodeProfile) -> List[str]:
    """Encode normalized PCM into fMP4 HLS, run inside the rendition directory."""
    a = profile.audio
    return [
        "-y",
        "-i", str(Path(in_wav).resolve()),
        "-c:a", a.codec,
        "-b:a", a.bitrate,
        "-ar", str(a.sample_rate),
        *make_hls_output_args(profile.segment_duration, AUDIO_SEGMENT_PATTERN),
        AUDIO_PLAYLIST_NAME,
    ]


# --------------------------- Execution ---------------------------

def run_ffmpeg(args: List[str], cwd: Optional[Path | str] = None,
               timeout: Optional[int] = None, ffmpeg_path: str = "ffmpeg",
               step: Optional[str] = None) -> subprocess.CompletedProcess:
    """
    Run ffmpeg with ``args``.

    Raises:
        TranscodeError: On nonzero exit, timeout, or missing executable
    """
    cmd = [ffmpeg_path, "-hide_banner", "-loglevel", "error", *args]
    logger.debug(f"Running {' '.join(cmd)} (cwd={cwd})")
    try:
        completed = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.error(f"ffmpeg timeout after {timeout}s: {step}")
        raise TranscodeError(f"ffmpeg timed out after {timeout}s", step=step) from e
    except FileNotFoundError as e:
        logger.error("ffmpeg not found. Please install ffmpeg.")
        raise TranscodeError(f"ffmpeg executable not found: {ffmpeg_path}", step=step) from e

    if completed.returncode != 0:
        stderr = (completed.stderr or "").strip()
        logger.error(f"ffmpeg failed: returncode={completed.returncode}, stderr={stderr[-2000:]}")
        raise TranscodeError(
            f"ffmpeg exited with code {completed.returncode}", step=step, stderr=stderr,
        )
    return completed


# --------------------------- Probe helpers ---------------------------

def probe_media(path: Path | str) -> Dict[str, Any]:
    """
    ffprobe a file through ffmpeg-python.

    Raises:
        TranscodeError: If the file cannot be probed
    """
    try:
        return ffmpeg.probe(str(path))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode('utf-8', errors='replace') if e.stderr else str(e)
        raise TranscodeError(f"Cannot probe {path}", step="probe", stderr=stderr) from e


def get_streams(probe: Dict[str, Any], stream_type: str) -> List[Dict[str, Any]]:
    return [s for s in probe.get("streams", []) if s.get("codec_type") == stream_type]


def has_audio_stream(probe: Dict[str, Any]) -> bool:
    return bool(get_streams(probe, "audio"))


def has_video_stream(probe: Dict[str, Any]) -> bool:
    return bool(get_streams(probe, "video"))
