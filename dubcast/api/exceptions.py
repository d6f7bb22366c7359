"""
Custom exceptions and handlers for Dubcast API.

This module defines custom exception classes and handlers for API error
management, and maps core errors onto them.
"""

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any

from dubcast import exceptions as core
from dubcast.hls.exceptions import ManifestParseError
from dubcast.storage.exceptions import StorageError as CoreStorageError
from .models.responses import ErrorResponse


class APIException(Exception):
    """Base API exception."""
    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(APIException):
    """Validation error."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, details)


class NotFoundError(APIException):
    """Resource not found error."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, details)


class ConflictError(APIException):
    """Resource is in a state that does not allow the operation."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, details)


class ProcessingError(APIException):
    """Dubbing pipeline did not succeed; details carry per-language outcomes."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 422, details)


class StorageError(APIException):
    """Storage operation error."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, details)


def from_core_error(exc: core.DubcastError) -> APIException:
    """Translate a core error into the matching API exception."""
    if isinstance(exc, core.ValidationError):
        details = {"field": exc.field} if exc.field else {}
        if isinstance(exc, core.UnsupportedLanguageError):
            details["languages"] = exc.languages
        return ValidationError(exc.message, details)
    if isinstance(exc, core.AssetNotFoundError):
        return NotFoundError(str(exc))
    if isinstance(exc, core.TrackStateError):
        return ConflictError(str(exc), {
            "language": exc.language, "current": exc.current, "requested": exc.requested,
        })
    if isinstance(exc, CoreStorageError):
        return StorageError(str(exc))
    if isinstance(exc, (core.SourceError, ManifestParseError)):
        return ProcessingError(str(exc))
    return APIException(str(exc))


async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.__class__.__name__,
            message=exc.message,
            details=exc.details
        ).model_dump(mode="json")
    )


async def core_exception_handler(request: Request, exc: core.DubcastError):
    """Handle errors raised by the service layer."""
    return await api_exception_handler(request, from_core_error(exc))


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error="HTTPException",
            message=str(exc.detail),
            details={"status_code": exc.status_code}
        ).model_dump(mode="json")
    )
