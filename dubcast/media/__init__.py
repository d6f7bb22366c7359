"""
Media module for Dubcast.

ffmpeg argument construction and the per-rendition HLS packaging pipeline.
"""

from .exceptions import TranscodeError
from .ffmpeg_utils import AudioProfile, VideoProfile, TranscodeProfile, run_ffmpeg, probe_media
from .artifact_pipeline import ArtifactPipeline, RenditionArtifacts

__all__ = [
    'TranscodeError',
    'AudioProfile',
    'VideoProfile',
    'TranscodeProfile',
    'run_ffmpeg',
    'probe_media',
    'ArtifactPipeline',
    'RenditionArtifacts',
]
