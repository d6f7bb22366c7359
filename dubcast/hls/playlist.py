"""
Master playlist codec for Dubcast

Goals
- Build the master playlist deterministically from the set of ready tracks
- Patch an existing playlist with one audio rendition without disturbing
  anything else in it
- Parse strictly: malformed input is reported, never half-patched

Output format::

    #EXTM3U
    #EXT-X-VERSION:7
    #EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="ORIGIN",LANGUAGE="origin",AUTOSELECT=YES,DEFAULT=YES,URI="audio/origin/audio.m3u8"
    #EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="ja",LANGUAGE="ja",AUTOSELECT=YES,DEFAULT=NO,URI="audio/ja/audio.m3u8"
    #EXT-X-STREAM-INF:BANDWIDTH=2500000,CODECS="avc1.4d401f,mp4a.40.2",RESOLUTION=1920x1080,AUDIO="aud"
    video/video.m3u8

This module does no I/O.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import ManifestParseError
from .models import AudioEntry, ParsedManifest, VideoEntry

logger = logging.getLogger(__name__)

HEADER_TAG = "#EXTM3U"
VERSION_TAG = "#EXT-X-VERSION:"
MEDIA_TAG = "#EXT-X-MEDIA:"
STREAM_INF_TAG = "#EXT-X-STREAM-INF:"

_ATTRIBUTE = r'[A-Z0-9-]+=(?:"[^"\r\n]*"|[^",\r\n]*)'
_ATTRIBUTE_LIST_RE = re.compile(rf'{_ATTRIBUTE}(?:,{_ATTRIBUTE})*')
_ATTRIBUTE_RE = re.compile(r'([A-Z0-9-]+)=("[^"\r\n]*"|[^",\r\n]*)')


def audio_uri(language: str) -> str:
    """Relative URI of a language's audio sub-playlist."""
    return f"audio/{language}/audio.m3u8"


# --------------------------- Encoding ---------------------------

def _quoted(value: str, attribute: str) -> str:
    if '"' in value or '\n' in value or '\r' in value:
        raise ValueError(f"{attribute} value cannot contain quotes or newlines: {value!r}")
    return f'"{value}"'


def format_media_line(entry: AudioEntry) -> str:
    """Render one #EXT-X-MEDIA audio line."""
    default = "YES" if entry.is_default else "NO"
    return (
        f"{MEDIA_TAG}TYPE=AUDIO,"
        f"GROUP-ID={_quoted(entry.group_id, 'GROUP-ID')},"
        f"NAME={_quoted(entry.name, 'NAME')},"
        f"LANGUAGE={_quoted(entry.language, 'LANGUAGE')},"
        f"AUTOSELECT=YES,DEFAULT={default},"
        f"URI={_quoted(entry.uri, 'URI')}"
    )


def format_stream_inf(video: VideoEntry) -> str:
    """Render the #EXT-X-STREAM-INF line (without its URI line)."""
    return (
        f"{STREAM_INF_TAG}BANDWIDTH={int(video.bandwidth)},"
        f"CODECS={_quoted(video.codecs, 'CODECS')},"
        f"RESOLUTION={video.resolution},"
        f"AUDIO={_quoted(video.audio_group, 'AUDIO')}"
    )


# --------------------------- Decoding ---------------------------

def _parse_attributes(payload: str, line_number: int, line: str) -> Dict[str, str]:
    if not _ATTRIBUTE_LIST_RE.fullmatch(payload):
        raise ManifestParseError("Malformed attribute list", line_number, line)
    attributes = {}
    for key, value in _ATTRIBUTE_RE.findall(payload):
        if value.startswith('"'):
            value = value[1:-1]
        attributes[key] = value
    return attributes


def _parse_media(attributes: Dict[str, str], line_number: int, line: str) -> Optional[AudioEntry]:
    if attributes.get("TYPE") != "AUDIO":
        return None
    for required in ("GROUP-ID", "LANGUAGE", "URI"):
        if not attributes.get(required):
            raise ManifestParseError(f"Audio rendition missing {required}", line_number, line)
    default = attributes.get("DEFAULT", "NO")
    if default not in ("YES", "NO"):
        raise ManifestParseError(f"Invalid DEFAULT value {default!r}", line_number, line)
    return AudioEntry(
        language=attributes["LANGUAGE"],
        name=attributes.get("NAME") or attributes["LANGUAGE"],
        uri=attributes["URI"],
        group_id=attributes["GROUP-ID"],
        is_default=default == "YES",
    )


def parse(text: str) -> ParsedManifest:
    """
    Parse master playlist text.

    Args:
        text: Playlist contents

    Returns:
        ParsedManifest with the version, audio renditions and video renditions

    Raises:
        ManifestParseError: If the header is missing, an attribute list is
            malformed, an audio rendition lacks required attributes, or a
            stream line is not followed by its URI
    """
    if text is None:
        raise ManifestParseError("Playlist text is empty")

    lines = text.lstrip("\ufeff").splitlines()
    manifest = ParsedManifest()
    seen_header = False
    pending_stream: Optional[Dict[str, str]] = None
    pending_line = (0, "")

    for index, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        if not seen_header:
            if line != HEADER_TAG:
                raise ManifestParseError(f"Missing {HEADER_TAG} header", index, raw)
            seen_header = True
            continue

        if pending_stream is not None:
            if line.startswith("#"):
                raise ManifestParseError("Stream entry is not followed by a URI", *pending_line)
            try:
                bandwidth = int(pending_stream["BANDWIDTH"])
            except (KeyError, ValueError):
                raise ManifestParseError("Stream entry has no valid BANDWIDTH", *pending_line)
            manifest.videos.append(VideoEntry(
                bandwidth=bandwidth,
                resolution=pending_stream.get("RESOLUTION", ""),
                codecs=pending_stream.get("CODECS", ""),
                uri=line,
                audio_group=pending_stream.get("AUDIO", ""),
            ))
            pending_stream = None
            continue

        if line.startswith(VERSION_TAG):
            try:
                manifest.version = int(line[len(VERSION_TAG):])
            except ValueError:
                raise ManifestParseError("Invalid version tag", index, raw)
        elif line.startswith(MEDIA_TAG):
            attributes = _parse_attributes(line[len(MEDIA_TAG):], index, raw)
            entry = _parse_media(attributes, index, raw)
            if entry is not None:
                manifest.audios.append(entry)
        elif line.startswith(STREAM_INF_TAG):
            pending_stream = _parse_attributes(line[len(STREAM_INF_TAG):], index, raw)
            pending_line = (index, raw)
        elif line.startswith("#"):
            # Other tags and comments are carried through untouched
            continue
        else:
            raise ManifestParseError("URI line without a preceding stream entry", index, raw)

    if not seen_header:
        raise ManifestParseError("Playlist text is empty")
    if pending_stream is not None:
        raise ManifestParseError("Stream entry is not followed by a URI", *pending_line)

    return manifest


# --------------------------- Codec ---------------------------

class MasterPlaylistCodec:
    """
    Encodes and patches master playlists.

    Ordering rule: the origin track sorts first, all others by language
    code ascending. Exactly one audio rendition is default: the origin
    track when present, else the first present language from
    ``default_priority_languages``, else the first rendition in sort order.
    """

    def __init__(
        self,
        version: int = 7,
        group_id: str = "aud",
        origin_language: str = "origin",
        origin_name: str = "ORIGIN",
        default_priority_languages: Sequence[str] = ("ja", "ko"),
    ):
        self.version = version
        self.group_id = group_id
        self.origin_language = origin_language
        self.origin_name = origin_name
        self.default_priority_languages = list(default_priority_languages)

    @classmethod
    def from_settings(cls) -> "MasterPlaylistCodec":
        from dubcast import settings
        return cls(
            version=settings.get_hls_version(),
            group_id=settings.get_hls_group_id(),
            origin_language=settings.get_origin_language(),
            origin_name=settings.get_origin_name(),
            default_priority_languages=settings.get_default_priority_languages(),
        )

    def sort_key(self, entry: AudioEntry):
        return (0 if entry.language == self.origin_language else 1, entry.language)

    def choose_default(self, languages: Iterable[str]) -> Optional[str]:
        """Pick the single default language for a set of ready languages."""
        present = set(languages)
        if not present:
            return None
        if self.origin_language in present:
            return self.origin_language
        for language in self.default_priority_languages:
            if language in present:
                return language
        return sorted(present)[0]

    def audio_entries_for(self, languages: Iterable[str]) -> List[AudioEntry]:
        """
        Project ready languages into audio entries with the default flag set.

        Args:
            languages: Languages whose tracks are ready

        Returns:
            Sorted audio entries, exactly one of them default when non-empty
        """
        unique = sorted(set(languages))
        default_language = self.choose_default(unique)
        entries = [
            AudioEntry(
                language=language,
                name=self.origin_name if language == self.origin_language else language,
                uri=audio_uri(language),
                group_id=self.group_id,
                is_default=language == default_language,
            )
            for language in unique
        ]
        return sorted(entries, key=self.sort_key)

    def build(self, video: Optional[VideoEntry], audios: Iterable[AudioEntry]) -> str:
        """
        Render a complete master playlist.

        The output depends only on the set of entries, not on their input
        order.

        Raises:
            ValueError: If the audio set is non-empty and does not carry
                exactly one default, or repeats a language. Callers are
                expected to guarantee both.
        """
        entries = sorted(audios, key=self.sort_key)

        languages = [entry.language for entry in entries]
        if len(set(languages)) != len(languages):
            raise ValueError(f"Duplicate audio languages: {languages}")

        defaults = [entry for entry in entries if entry.is_default]
        if entries and len(defaults) != 1:
            raise ValueError(
                f"Exactly one default audio rendition required, got {len(defaults)}"
            )

        lines = [HEADER_TAG, f"{VERSION_TAG}{self.version}"]
        lines.extend(format_media_line(entry) for entry in entries)
        if video is not None:
            lines.append(format_stream_inf(video))
            lines.append(video.uri)

        return "\n".join(lines) + "\n"

    def build_for_languages(self, video: Optional[VideoEntry], languages: Iterable[str]) -> str:
        return self.build(video, self.audio_entries_for(languages))

    def append_audio_if_absent(self, existing_text: str, entry: AudioEntry) -> str:
        """
        Insert one audio rendition into an existing playlist.

        The entry goes immediately before the first #EXT-X-STREAM-INF line,
        or at the end when there is none. Every other line is preserved
        verbatim. If an audio rendition with the same LANGUAGE already
        exists the text is returned unchanged, so repeated calls are
        idempotent. A default entry is demoted when the playlist already
        has a default rendition.

        Raises:
            ManifestParseError: If ``existing_text`` cannot be parsed
        """
        parsed = parse(existing_text)

        if parsed.has_language(entry.language):
            logger.debug(f"Audio '{entry.language}' already present, leaving playlist unchanged")
            return existing_text

        if entry.is_default and parsed.default_audio is not None:
            entry = replace(entry, is_default=False)
        elif not parsed.audios and not entry.is_default:
            entry = replace(entry, is_default=True)

        media_line = format_media_line(entry)
        lines = existing_text.split("\n")

        stream_index = next(
            (i for i, line in enumerate(lines) if line.strip().startswith(STREAM_INF_TAG)),
            None,
        )
        if stream_index is not None:
            lines.insert(stream_index, media_line)
        elif lines and lines[-1] == "":
            # Keep the trailing newline last
            lines.insert(len(lines) - 1, media_line)
        else:
            lines.append(media_line)

        return "\n".join(lines)
