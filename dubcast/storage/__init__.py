"""
Storage module for Dubcast.

This module provides the object store abstraction (S3 and local
filesystem backends) and CDN cache invalidation.
"""

from .base import StorageBackend
from .local import LocalStorage
from .s3 import S3Storage
from .cdn import CacheInvalidator, CloudFrontInvalidator, NullInvalidator, create_invalidator
from .factory import create_storage_backend, create_storage_backend_with_config
from .exceptions import (
    StorageError,
    StorageNotFoundError,
    UploadError,
    StorageBackendError
)

__all__ = [
    'StorageBackend',
    'LocalStorage',
    'S3Storage',
    'CacheInvalidator',
    'CloudFrontInvalidator',
    'NullInvalidator',
    'create_invalidator',
    'create_storage_backend',
    'create_storage_backend_with_config',
    'StorageError',
    'StorageNotFoundError',
    'UploadError',
    'StorageBackendError'
]
