"""
Base dubbing provider interface for swappable dubbing services
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)


class DubbingJobStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class DubbingJob:
    """
    Provider job state, decoded once at the client boundary.

    Optional fields are None when the provider did not report them.
    """
    job_id: str
    status: DubbingJobStatus
    target_languages: List[str] = field(default_factory=list)
    error: Optional[str] = None
    expected_duration_sec: Optional[float] = None
    raw_status: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.status != DubbingJobStatus.IN_PROGRESS


class DubbingProvider(ABC):
    """
    Abstract base class for dubbing providers.

    All provider implementations should inherit from this class and
    implement the required abstract methods.
    """

    name = "base"

    @abstractmethod
    def submit(self, audio: bytes, target_language: str, filename: str = "source.m4a") -> str:
        """
        Start a dub job.

        Args:
            audio: Source audio bytes
            target_language: Language code to dub into
            filename: Name reported to the provider (drives format detection)

        Returns:
            Provider job id

        Raises:
            ProviderError: If the submission is rejected
        """
        pass

    @abstractmethod
    def poll(self, job_id: str) -> DubbingJob:
        """
        Fetch current job state.

        Raises:
            ProviderError: If the state cannot be fetched
        """
        pass

    @abstractmethod
    def fetch_audio(self, job_id: str, language: str) -> bytes:
        """
        Download the dubbed audio of a completed job.

        Raises:
            ProviderError: If the download fails
        """
        pass

    def fetch_video(self, job_id: str, language: str) -> Optional[bytes]:
        """
        Download muxed dubbed video when the provider offers it.

        Returns:
            Video bytes, or None when no video output is available
        """
        return None

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate that the provider configuration is correct.

        Returns:
            True if configuration is valid, False otherwise
        """
        pass


def wait_for_job(provider: DubbingProvider, job_id: str, language: str,
                 max_attempts: int = 120, interval_seconds: float = 5.0,
                 sleep: Callable[[float], None] = time.sleep) -> DubbingJob:
    """
    Poll a job until it completes, with a bounded number of attempts.

    Args:
        provider: Provider that owns the job
        job_id: Provider job id
        language: Target language, for error reporting
        max_attempts: Number of polls before giving up
        interval_seconds: Sleep between polls
        sleep: Sleep function (tests pass a no-op)

    Returns:
        The completed job

    Raises:
        ProviderError: If the provider reports the job as failed
        ProviderTimeoutError: If the job is still running after ``max_attempts`` polls
    """
    for attempt in range(1, max_attempts + 1):
        job = provider.poll(job_id)
        if job.status == DubbingJobStatus.COMPLETED:
            logger.info(f"[{language}] Dub job {job_id} completed after {attempt} poll(s)")
            return job
        if job.status == DubbingJobStatus.FAILED:
            raise ProviderError(
                f"Dub job failed: {job.error or job.raw_status or 'unknown error'}",
                language=language, job_id=job_id,
            )
        logger.debug(f"[{language}] Dub job {job_id} still {job.raw_status} ({attempt}/{max_attempts})")
        if attempt < max_attempts:
            sleep(interval_seconds)

    raise ProviderTimeoutError(
        f"Dub job not finished after {max_attempts} polls of {interval_seconds}s",
        language=language, job_id=job_id,
    )
