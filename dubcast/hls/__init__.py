"""
HLS master playlist encoding and decoding.
"""

from .models import AudioEntry, VideoEntry, ParsedManifest
from .exceptions import ManifestParseError
from .playlist import (
    MasterPlaylistCodec,
    audio_uri,
    format_media_line,
    format_stream_inf,
    parse,
)

__all__ = [
    'AudioEntry',
    'VideoEntry',
    'ParsedManifest',
    'ManifestParseError',
    'MasterPlaylistCodec',
    'audio_uri',
    'format_media_line',
    'format_stream_inf',
    'parse',
]
