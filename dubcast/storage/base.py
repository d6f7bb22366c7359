"""
Abstract object store interface for Dubcast.

This module defines the abstract base class for storage backends,
providing the key/value contract the remote reconciler relies on.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Short backend name ("s3", "local")."""
        pass

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Read an object.

        Args:
            key: Object key

        Returns:
            Object body

        Raises:
            StorageNotFoundError: If the key does not exist
        """
        pass

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: Optional[str] = None,
            cache_control: Optional[str] = None) -> None:
        """
        Write an object.

        Args:
            key: Object key
            data: Object body
            content_type: Content-Type metadata
            cache_control: Cache-Control metadata

        Raises:
            UploadError: If the write fails
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """
        Check if an object exists.

        Args:
            key: Object key

        Returns:
            True if the object exists, False otherwise
        """
        pass

    @abstractmethod
    def copy(self, src_key: str, dst_key: str,
             metadata_override: Optional[Dict[str, str]] = None) -> None:
        """
        Server-side copy, optionally replacing content metadata.

        Args:
            src_key: Source key
            dst_key: Destination key
            metadata_override: Optional ``content_type``/``cache_control`` values
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete an object.

        Returns:
            True if something was deleted, False otherwise
        """
        pass

    @abstractmethod
    def list_files(self, prefix: str) -> List[str]:
        """
        List keys with given prefix.

        Args:
            prefix: Key prefix to search for

        Returns:
            Sorted list of keys matching the prefix
        """
        pass

    @abstractmethod
    def get_file_url(self, key: str) -> str:
        """
        Get a URL or path for an object.

        Args:
            key: Object key

        Returns:
            Backend URL or local path
        """
        pass

    def upload_file(self, local_path: Path, key: str, content_type: Optional[str] = None,
                    cache_control: Optional[str] = None) -> None:
        """Upload a local file under ``key``."""
        self.put(key, Path(local_path).read_bytes(), content_type, cache_control)
