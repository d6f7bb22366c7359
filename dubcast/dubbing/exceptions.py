"""
Dubbing provider exceptions for Dubcast.
"""

from typing import Optional

from dubcast.exceptions import DubcastError


class ProviderError(DubcastError):
    """Dub job submission, polling or download failed for one language"""

    def __init__(self, message: str, language: Optional[str] = None,
                 job_id: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        self.language = language
        self.job_id = job_id
        self.status_code = status_code

        error_msg = message
        if language:
            error_msg += f" (Language: {language})"
        if job_id:
            error_msg += f" (Job: {job_id})"
        super().__init__(error_msg)


class ProviderTimeoutError(ProviderError):
    """Dub job did not finish within the polling window"""
    pass
