"""
Source video resolution.

HTTP(S) sources are downloaded once per request into the scratch root;
local paths are used in place.
"""
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests

from dubcast.exceptions import SourceError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def is_remote(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def validate_source(source: Optional[str]) -> str:
    """
    Reject an obviously unusable source before any side effect.

    Raises:
        ValidationError: If the source is empty or a missing local file
    """
    if not source or not str(source).strip():
        raise ValidationError("A source video URL or path is required", field="source_url")
    source = str(source).strip()
    if not is_remote(source) and not Path(source).is_file():
        raise ValidationError(f"Source file not found: {source}", field="source_url")
    return source


def fetch_source(source: str, dest_dir: Path, session: Optional[requests.Session] = None,
                 timeout: float = 300) -> Path:
    """
    Make the source available as a local file.

    Args:
        source: HTTP(S) URL or local path
        dest_dir: Directory for downloads
        session: Optional requests session
        timeout: Connect/read timeout in seconds

    Returns:
        Local path of the source video

    Raises:
        SourceError: If the download fails or the local file is gone
    """
    if not is_remote(source):
        path = Path(source)
        if not path.is_file():
            raise SourceError(f"Source file not found: {source}")
        return path

    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(urlparse(source).path).suffix or ".mp4"
    target = dest_dir / f"source{suffix}"

    http = session or requests
    logger.info(f"Downloading source {source}")
    try:
        with http.get(source, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except (requests.RequestException, OSError) as e:
        raise SourceError(f"Failed to download source {source}: {e}") from e

    logger.info(f"Downloaded source to {target} ({target.stat().st_size} bytes)")
    return target
