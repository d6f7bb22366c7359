"""
Media processing exceptions for Dubcast.

This module defines custom exceptions for transcoding and packaging.
"""

from dubcast.exceptions import DubcastError


class TranscodeError(DubcastError):
    """Raised when an ffmpeg step fails or leaves expected output missing"""

    def __init__(self, message: str, step: str = None, language: str = None, stderr: str = None):
        self.step = step
        self.language = language
        self.stderr = stderr
        self.message = message

        error_msg = message
        if step:
            error_msg += f" (Step: {step})"
        if language:
            error_msg += f" (Language: {language})"

        super().__init__(error_msg)
