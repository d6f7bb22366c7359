"""
Storage-related exceptions for Dubcast.

This module defines custom exceptions for object store operations.
"""

from dubcast.exceptions import DubcastError


class StorageError(DubcastError):
    """Base storage error."""
    pass


class StorageNotFoundError(StorageError):
    """Object not found in storage."""
    pass


class UploadError(StorageError):
    """Writing an artifact to the object store failed; fatal to a request."""
    pass


class StorageBackendError(StorageError):
    """Storage backend error."""
    pass
