"""
Playlist exceptions for Dubcast.
"""

from typing import Optional

from dubcast.exceptions import DubcastError


class ManifestParseError(DubcastError):
    """Raised when existing master playlist text cannot be parsed"""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.message = message
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            super().__init__(f"{message} (Line {line_number}: {line!r})")
        else:
            super().__init__(message)
