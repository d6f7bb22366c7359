"""
Storage backend factory for Dubcast.

This module provides factory functions for creating storage backends
based on configuration or explicit parameters.
"""

from pathlib import Path

from .base import StorageBackend
from .local import LocalStorage
from .s3 import S3Storage
from .exceptions import StorageBackendError


def create_storage_backend() -> StorageBackend:
    """
    Create storage backend based on configuration.

    Returns:
        Configured storage backend instance

    Raises:
        StorageBackendError: If backend type is unknown or configuration is invalid
    """
    from dubcast import settings

    backend_type = settings.get_storage_backend()

    if backend_type == "local":
        return create_storage_backend_with_config(
            "local",
            base_path=settings.get_storage_local_path(),
            public_base_url=settings.get_public_base_url(),
        )
    if backend_type == "s3":
        return create_storage_backend_with_config(
            "s3",
            bucket=settings.get_storage_s3_bucket(),
            region=settings.get_storage_s3_region(),
            public_base_url=settings.get_public_base_url(),
        )
    raise StorageBackendError(f"Unknown storage backend: {backend_type}")


def create_storage_backend_with_config(backend_type: str, **kwargs) -> StorageBackend:
    """
    Create storage backend with explicit configuration.

    Args:
        backend_type: Type of storage backend ("local" or "s3")
        **kwargs: Backend-specific configuration parameters

    Returns:
        Configured storage backend instance

    Raises:
        StorageBackendError: If backend type is unknown or configuration is invalid
    """
    if backend_type == "local":
        base_path = kwargs.get('base_path') or 'output'
        return LocalStorage(Path(base_path), public_base_url=kwargs.get('public_base_url'))

    if backend_type == "s3":
        bucket = kwargs.get('bucket')
        if not bucket:
            raise StorageBackendError("bucket is required for S3 backend")
        return S3Storage(
            bucket,
            region=kwargs.get('region') or 'us-east-1',
            public_base_url=kwargs.get('public_base_url'),
            client=kwargs.get('client'),
        )

    raise StorageBackendError(f"Unknown storage backend: {backend_type}")
