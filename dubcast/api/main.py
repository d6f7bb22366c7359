from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from dubcast import settings
from dubcast.db.session import DatabaseManager
from dubcast.exceptions import DubcastError
from dubcast.services.events import LoggingObserver
from dubcast.services.orchestrator import PipelineOrchestrator, build_orchestrator

from .routes import health, dubbing, master, assets
from .exceptions import (
    APIException,
    api_exception_handler,
    core_exception_handler,
    http_exception_handler,
)
from .middleware import RequestTracingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Dubcast API starting up...")

    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = DatabaseManager()
        app.state.database.create_tables()
        logger.info("Database initialized")

    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = build_orchestrator(app.state.database, observer=LoggingObserver())
        logger.info(f"Pipeline ready (storage={app.state.orchestrator.reconciler.storage.backend_type})")

    logger.info("Dubcast API started successfully")

    yield

    logger.info("Dubcast API shutting down...")
    if owns_database:
        app.state.database.close()
        logger.info("Database connections closed")
    logger.info("Dubcast API shutdown complete")


def create_app(orchestrator: Optional[PipelineOrchestrator] = None,
               database: Optional[DatabaseManager] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator; wired from config at startup when omitted
        database: Database manager shared with the orchestrator
    """
    app = FastAPI(
        title=settings.get_app_name(),
        description="Multi-language HLS dubbing API",
        version=settings.get_app_version(),
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.database = database
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTracingMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(dubbing.router, prefix="/api/v1", tags=["dubbing"])
    app.include_router(master.router, prefix="/api/v1", tags=["master"])
    app.include_router(assets.router, prefix="/api/v1", tags=["assets"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "message": settings.get_app_name(),
            "version": settings.get_app_version(),
            "docs": "/docs",
            "redoc": "/redoc"
        }

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(DubcastError, core_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    return app


app = create_app()

# Allow running with: python -m dubcast.api.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("dubcast.api.main:app", host="127.0.0.1", port=8000, reload=True)
