"""
Dependency injection for Dubcast API

Collaborators are built once in the application lifespan and kept on
``app.state``; these helpers hand them to route functions.
"""

from fastapi import Request

from dubcast.db.session import DatabaseManager
from dubcast.services.orchestrator import PipelineOrchestrator
from dubcast.services.track_registry import AssetRepository, TrackRegistry
from dubcast.storage.base import StorageBackend


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def get_database(request: Request) -> DatabaseManager:
    return request.app.state.database


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.orchestrator.reconciler.storage


def get_registry(request: Request) -> TrackRegistry:
    return request.app.state.orchestrator.registry


def get_assets(request: Request) -> AssetRepository:
    return request.app.state.orchestrator.assets
