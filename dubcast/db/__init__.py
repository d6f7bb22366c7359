"""
Database module for Dubcast.

This module provides database models, session management, and CRUD
operations for the dub-track registry.
"""

from .models import Base, MediaAsset, DubTrack, TRACK_STATUSES
from .session import DatabaseManager
from .crud import MediaAssetCRUD, DubTrackCRUD

__all__ = [
    'Base',
    'MediaAsset',
    'DubTrack',
    'TRACK_STATUSES',
    'DatabaseManager',
    'MediaAssetCRUD',
    'DubTrackCRUD',
]
