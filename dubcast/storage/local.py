"""
Local filesystem storage backend for Dubcast.

Stores objects as files under a base directory. Used for development
setups without a bucket and as the object store in tests; content
metadata is kept in memory so callers can inspect what would have been
sent to a real bucket.
"""

import logging
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .base import StorageBackend
from .exceptions import StorageError, StorageNotFoundError, UploadError

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: Path, public_base_url: Optional[str] = None):
        """
        Initialize LocalStorage backend.

        Args:
            base_path: Base directory for storage operations
            public_base_url: Optional URL prefix returned by get_file_url
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.metadata: Dict[str, Dict[str, Optional[str]]] = {}
        self._lock = threading.Lock()

    @property
    def backend_type(self) -> str:
        return "local"

    def _path(self, key: str) -> Path:
        path = (self.base_path / key.lstrip("/")).resolve()
        if self.base_path.resolve() not in path.parents and path != self.base_path.resolve():
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise StorageNotFoundError(f"Object not found: {key}")
        return path.read_bytes()

    def put(self, key: str, data: bytes, content_type: Optional[str] = None,
            cache_control: Optional[str] = None) -> None:
        try:
            dest_path = self._path(key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Failed to write {key}: {e}") from e
        with self._lock:
            self.metadata[key] = {"content_type": content_type, "cache_control": cache_control}
        logger.debug(f"Stored {key} ({len(data)} bytes)")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def copy(self, src_key: str, dst_key: str,
             metadata_override: Optional[Dict[str, str]] = None) -> None:
        src = self._path(src_key)
        if not src.is_file():
            raise StorageNotFoundError(f"Object not found: {src_key}")
        dst = self._path(dst_key)
        dst.parent.mkdir(parents=True, exist_ok=True)
        if src != dst:
            shutil.copy2(src, dst)
        with self._lock:
            meta = dict(self.metadata.get(src_key, {"content_type": None, "cache_control": None}))
            meta.update(metadata_override or {})
            self.metadata[dst_key] = meta

    def delete(self, key: str) -> bool:
        file_path = self._path(key)
        if not file_path.exists():
            return False
        file_path.unlink()
        with self._lock:
            self.metadata.pop(key, None)
        return True

    def list_files(self, prefix: str) -> List[str]:
        keys = [
            p.relative_to(self.base_path).as_posix()
            for p in self.base_path.rglob('*') if p.is_file()
        ]
        return sorted(k for k in keys if k.startswith(prefix))

    def get_file_url(self, key: str) -> str:
        """
        Return a public URL when a base URL is configured, else the local path.
        """
        if self.public_base_url:
            return f"{self.public_base_url}/{key.lstrip('/')}"
        return str(self.base_path / key)
