"""
Per-asset single-writer lock.

Guards manifest rebuild, upload and invalidation so two requests for the
same asset in this process cannot interleave and drop a track from the
master playlist. Requests in other processes are not covered.

A lock lives only while someone holds or waits for it.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class AssetLockManager:
    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    def _checkout(self, asset_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.setdefault(asset_id, threading.Lock())
            self._holders[asset_id] = self._holders.get(asset_id, 0) + 1
            return lock

    def _checkin(self, asset_id: str) -> None:
        with self._guard:
            self._holders[asset_id] -= 1
            if self._holders[asset_id] == 0:
                del self._holders[asset_id]
                del self._locks[asset_id]

    @contextmanager
    def hold(self, asset_id: str) -> Iterator[None]:
        lock = self._checkout(asset_id)
        try:
            if not lock.acquire(blocking=False):
                logger.info(f"[{asset_id}] Waiting for another manifest writer")
                lock.acquire()
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(asset_id)

    def is_locked(self, asset_id: str) -> bool:
        with self._guard:
            lock = self._locks.get(asset_id)
            return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
