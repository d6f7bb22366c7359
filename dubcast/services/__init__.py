"""
Dubcast Services Module

Service layer components: the dub-track registry, the remote reconciler,
pipeline events and the orchestrator that composes them.
"""

from .asset_lock import AssetLockManager
from .events import EventDispatcher, LoggingObserver, PipelineEvent, PipelineObserver, PipelineStage
from .remote_reconciler import RemoteReconciler
from .track_registry import AssetRecord, AssetRepository, TrackRecord, TrackRegistry
from .orchestrator import (
    DubbingRequest,
    LanguageOutcome,
    LanguageStatus,
    OrchestrationResult,
    OrchestratorOptions,
    PipelineOrchestrator,
    build_orchestrator,
)

__all__ = [
    'AssetLockManager',
    'EventDispatcher',
    'LoggingObserver',
    'PipelineEvent',
    'PipelineObserver',
    'PipelineStage',
    'RemoteReconciler',
    'AssetRecord',
    'AssetRepository',
    'TrackRecord',
    'TrackRegistry',
    'DubbingRequest',
    'LanguageOutcome',
    'LanguageStatus',
    'OrchestrationResult',
    'OrchestratorOptions',
    'PipelineOrchestrator',
    'build_orchestrator',
]
