"""
Health check endpoints
"""

from fastapi import APIRouter, Depends
from datetime import datetime
from typing import Dict, Any

from dubcast import settings
from dubcast.db.session import DatabaseManager
from dubcast.storage.base import StorageBackend
from dubcast.storage.exceptions import StorageError
from ..dependencies import get_database, get_storage
from ..models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy", version=settings.get_app_version())


@router.get("/health/detailed")
def detailed_health_check(
    database: DatabaseManager = Depends(get_database),
    storage: StorageBackend = Depends(get_storage),
) -> Dict[str, Any]:
    """Detailed health check with component status."""
    database_ok = database.check_connection()

    try:
        storage.list_files("__healthcheck__/")
        storage_status = "healthy"
    except StorageError as e:
        storage_status = f"unhealthy: {e}"

    healthy = database_ok and storage_status == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now().isoformat(),
        "components": {
            "database": "healthy" if database_ok else "unhealthy",
            "storage": storage_status,
            "storage_backend": storage.backend_type,
        },
    }
