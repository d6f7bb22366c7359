"""
Core exception hierarchy for Dubcast.

Module-specific errors (storage, media, dubbing, hls) subclass
``DubcastError`` so callers can catch the whole family at the seams
where a request is reported back to the user.
"""

from typing import Optional, List


class DubcastError(Exception):
    """Base error for all Dubcast failures."""
    pass


class ValidationError(DubcastError):
    """Malformed request: rejected before any side effect."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        if field:
            super().__init__(f"{message} (Field: {field})")
        else:
            super().__init__(message)


class UnsupportedLanguageError(ValidationError):
    """Raised when a requested language is outside the supported set"""

    def __init__(self, languages: List[str]):
        self.languages = list(languages)
        super().__init__(
            f"Unsupported language code(s): {', '.join(self.languages)}",
            field="target_languages",
        )


class AssetNotFoundError(DubcastError):
    """Raised when an asset id or section id does not resolve"""
    pass


class TrackStateError(DubcastError):
    """
    Illegal dub-track status transition.

    This is a programming error: the orchestrator must only request
    transitions allowed by the track state machine.
    """

    def __init__(self, language: str, current: str, requested: str):
        self.language = language
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move track '{language}' from '{current}' to '{requested}'"
        )


class SourceError(DubcastError):
    """The source video could not be fetched or read"""
    pass
