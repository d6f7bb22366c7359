"""
ElevenLabs dubbing client implementation
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from .base import DubbingJob, DubbingJobStatus, DubbingProvider
from .exceptions import ProviderError

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "dubbed": DubbingJobStatus.COMPLETED,
    "failed": DubbingJobStatus.FAILED,
}


def decode_job(payload: Dict[str, Any], job_id: Optional[str] = None) -> DubbingJob:
    """
    Turn an ElevenLabs dubbing resource into a DubbingJob.

    Only ``dubbed`` and ``failed`` are terminal; every other status
    (``dubbing``, ``cloning`` ...) counts as in progress.
    """
    if not isinstance(payload, dict):
        raise ProviderError(f"Unexpected dubbing response: {payload!r}", job_id=job_id)
    resolved_id = payload.get("dubbing_id") or job_id
    if not resolved_id:
        raise ProviderError("Dubbing response carries no dubbing_id")
    raw_status = payload.get("status")
    duration = payload.get("expected_duration_sec")
    return DubbingJob(
        job_id=resolved_id,
        status=_STATUS_MAP.get(raw_status, DubbingJobStatus.IN_PROGRESS),
        target_languages=list(payload.get("target_languages") or []),
        error=payload.get("error"),
        expected_duration_sec=float(duration) if duration is not None else None,
        raw_status=raw_status,
    )


class ElevenLabsDubbingClient(DubbingProvider):
    """
    Dubbing provider backed by the ElevenLabs dubbing REST API.

    ElevenLabs serves every dub from one download endpoint: MP4 when the
    job produced video, otherwise audio. ``fetch_video`` keeps the
    downloaded body when it is not video so the following
    ``fetch_audio`` does not download it again.
    """

    name = "elevenlabs"

    def __init__(self, api_key: Optional[str], base_url: str = "https://api.elevenlabs.io",
                 timeout: float = 120, prefer_video_output: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize ElevenLabs client.

        Args:
            api_key: ElevenLabs API key
            base_url: API root
            timeout: Per-request timeout in seconds
            prefer_video_output: Try muxed video output before audio
            session: Optional requests session (tests inject a mock)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.prefer_video_output = prefer_video_output
        self.session = session or requests.Session()
        self._downloads: Dict[Tuple[str, str], bytes] = {}
        self._downloads_lock = threading.Lock()

        logger.info(f"Initialized ElevenLabs dubbing client ({self.base_url})")

    def validate_config(self) -> bool:
        if not self.api_key:
            logger.error("ElevenLabs API key is missing")
            return False
        return True

    def _request(self, method: str, path: str, language: Optional[str] = None,
                 job_id: Optional[str] = None, **kwargs) -> requests.Response:
        if not self.validate_config():
            raise ProviderError("ELEVENLABS_API_KEY is not configured", language=language, job_id=job_id)

        headers = {"xi-api-key": self.api_key, "User-Agent": "Dubcast/1.0"}
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ProviderError(f"ElevenLabs request failed: {e}", language=language, job_id=job_id) from e

        if response.status_code >= 400:
            detail = (response.text or "")[:500]
            logger.error(f"ElevenLabs {method} {path} -> {response.status_code}: {detail}")
            raise ProviderError(
                f"ElevenLabs returned HTTP {response.status_code}: {detail}",
                language=language, job_id=job_id, status_code=response.status_code,
            )
        return response

    def _json(self, response: requests.Response, language: Optional[str] = None,
              job_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("ElevenLabs returned invalid JSON", language=language, job_id=job_id) from e

    def submit(self, audio: bytes, target_language: str, filename: str = "source.m4a") -> str:
        logger.info(f"[{target_language}] Submitting {len(audio)} bytes to ElevenLabs dubbing")
        response = self._request(
            "POST", "/v1/dubbing",
            language=target_language,
            files={"file": (filename, audio)},
            data={"target_lang": target_language, "source_lang": "auto"},
        )
        job = decode_job(self._json(response, language=target_language))
        logger.info(f"[{target_language}] ElevenLabs dubbing job {job.job_id} created")
        return job.job_id

    def poll(self, job_id: str) -> DubbingJob:
        response = self._request("GET", f"/v1/dubbing/{job_id}", job_id=job_id)
        return decode_job(self._json(response, job_id=job_id), job_id=job_id)

    def _download(self, job_id: str, language: str) -> requests.Response:
        return self._request("GET", f"/v1/dubbing/{job_id}/audio/{language}", language=language, job_id=job_id)

    def fetch_video(self, job_id: str, language: str) -> Optional[bytes]:
        if not self.prefer_video_output:
            return None
        response = self._download(job_id, language)
        content_type = response.headers.get("Content-Type", "")
        if content_type.startswith("video/"):
            logger.info(f"[{language}] Fetched dubbed video for job {job_id}")
            return response.content
        with self._downloads_lock:
            self._downloads[(job_id, language)] = response.content
        return None

    def fetch_audio(self, job_id: str, language: str) -> bytes:
        with self._downloads_lock:
            cached = self._downloads.pop((job_id, language), None)
        if cached is not None:
            return cached
        response = self._download(job_id, language)
        logger.info(f"[{language}] Fetched dubbed audio for job {job_id}")
        return response.content
