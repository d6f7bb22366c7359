"""
Value objects for master playlist entries.

These are projections of registry state computed at build time; they are
never persisted.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set


@dataclass(frozen=True)
class AudioEntry:
    """One alternative audio rendition (#EXT-X-MEDIA TYPE=AUDIO)."""
    language: str
    name: str
    uri: str
    group_id: str = "aud"
    is_default: bool = False


@dataclass(frozen=True)
class VideoEntry:
    """The video rendition (#EXT-X-STREAM-INF + URI line)."""
    bandwidth: int
    resolution: str
    codecs: str
    uri: str
    audio_group: str = "aud"


@dataclass
class ParsedManifest:
    """Structured view of a master playlist."""
    version: Optional[int] = None
    audios: List[AudioEntry] = field(default_factory=list)
    videos: List[VideoEntry] = field(default_factory=list)

    @property
    def video(self) -> Optional[VideoEntry]:
        return self.videos[0] if self.videos else None

    @property
    def languages(self) -> Set[str]:
        return {audio.language for audio in self.audios}

    def has_language(self, language: str) -> bool:
        return any(audio.language == language for audio in self.audios)

    @property
    def default_audio(self) -> Optional[AudioEntry]:
        for audio in self.audios:
            if audio.is_default:
                return audio
        return None
