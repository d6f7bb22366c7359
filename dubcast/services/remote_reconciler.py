"""
Remote Reconciler
Existence checks, artifact upload and CDN invalidation against the object store.

Manifests are cached briefly so updates reach players quickly; segments and
init segments are immutable once written because their names are
content-stable.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from dubcast.storage.base import StorageBackend
from dubcast.storage.cdn import CacheInvalidator, NullInvalidator
from dubcast.storage.exceptions import StorageError, StorageNotFoundError, UploadError

logger = logging.getLogger(__name__)

MANIFEST_CACHE_CONTROL = "public, max-age=60"
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"

_CONTENT_HEADERS = {
    ".m3u8": ("application/vnd.apple.mpegurl", MANIFEST_CACHE_CONTROL),
    ".m4s": ("video/iso.segment", IMMUTABLE_CACHE_CONTROL),
    ".mp4": ("video/mp4", IMMUTABLE_CACHE_CONTROL),
    ".mp3": ("audio/mpeg", None),
    ".wav": ("audio/wav", None),
}


def content_headers(key: str) -> Tuple[Optional[str], Optional[str]]:
    """Content-Type and Cache-Control for a key, by file category."""
    return _CONTENT_HEADERS.get(Path(key).suffix.lower(), (None, None))


class RemoteReconciler:
    """Keeps the object store in step with locally generated artifacts."""

    def __init__(self, storage: StorageBackend, invalidator: Optional[CacheInvalidator] = None,
                 master_filename: str = "master.m3u8", upload_workers: int = 8):
        self.storage = storage
        self.invalidator = invalidator or NullInvalidator()
        self.master_filename = master_filename
        self.upload_workers = max(1, upload_workers)

    def exists(self, key: str) -> bool:
        """
        Check whether an artifact is already in the store.

        Only used to skip regenerating renditions; never to decide which
        tracks the master playlist advertises.
        """
        return self.storage.exists(key)

    def public_url(self, key: str) -> str:
        return self.storage.get_file_url(key)

    def fetch_manifest_text(self, key: str) -> Optional[str]:
        """Current remote playlist text, or None if there is none."""
        try:
            return self.storage.get(key).decode("utf-8")
        except StorageNotFoundError:
            return None

    def upload_file(self, local_path: Path, key: str) -> str:
        content_type, cache_control = content_headers(key)
        try:
            self.storage.upload_file(local_path, key, content_type, cache_control)
        except UploadError:
            raise
        except (StorageError, OSError) as e:
            raise UploadError(f"Failed to upload {local_path} to {key}: {e}") from e
        return key

    def upload_manifest(self, key: str, text: str) -> str:
        """Write playlist text directly."""
        content_type, cache_control = content_headers(key)
        try:
            self.storage.put(key, text.encode("utf-8"), content_type, cache_control)
        except UploadError:
            raise
        except StorageError as e:
            raise UploadError(f"Failed to upload manifest {key}: {e}") from e
        logger.info(f"Uploaded manifest {key}")
        return key

    def upload_tree(self, local_root: Path, key_prefix: str) -> List[str]:
        """
        Upload every file under ``local_root`` to ``key_prefix``.

        Child playlists and segments are uploaded first; a master playlist
        at the root goes last so it never references missing children.

        Returns:
            Uploaded keys, in upload order of the two phases

        Raises:
            UploadError: If any file fails to upload
        """
        local_root = Path(local_root)
        if key_prefix and not key_prefix.endswith("/"):
            key_prefix += "/"

        files = sorted(p for p in local_root.rglob("*") if p.is_file())
        master_path = local_root / self.master_filename
        children = [p for p in files if p != master_path]

        def key_for(path: Path) -> str:
            return key_prefix + path.relative_to(local_root).as_posix()

        logger.info(f"Uploading {len(files)} file(s) from {local_root} to {key_prefix}")
        with ThreadPoolExecutor(max_workers=self.upload_workers) as executor:
            uploaded = list(executor.map(lambda p: self.upload_file(p, key_for(p)), children))

        if master_path.is_file():
            uploaded.append(self.upload_file(master_path, key_for(master_path)))
        return uploaded

    def invalidate(self, master_key: str) -> bool:
        """
        Purge the CDN entry for exactly one asset's master playlist.

        Returns False when skipped or failed. Failures are logged; a briefly stale
        playlist at the edge is acceptable.
        """
        path = "/" + master_key.lstrip("/")
        try:
            return self.invalidator.invalidate_paths([path]) is not None
        except (ClientError, BotoCoreError, StorageError) as e:
            logger.error(f"CDN invalidation failed for {path}: {e}")
            return False
