"""
CDN cache invalidation.

Only the master playlist is ever purged: child playlists and segments
are content-stable once written and are cached as immutable.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

import boto3

from .exceptions import StorageBackendError

logger = logging.getLogger(__name__)


class CacheInvalidator(ABC):
    """Purges CDN paths."""

    @abstractmethod
    def invalidate_paths(self, paths: List[str]) -> Optional[str]:
        """
        Request a cache purge.

        Returns:
            Provider invalidation id, or None when nothing was requested
        """
        pass


class NullInvalidator(CacheInvalidator):
    """Used when no CDN distribution is configured."""

    def invalidate_paths(self, paths: List[str]) -> Optional[str]:
        logger.warning(f"CDN distribution not configured, skipping invalidation of {paths}")
        return None


class CloudFrontInvalidator(CacheInvalidator):
    """CloudFront ``create_invalidation`` wrapper."""

    def __init__(self, distribution_id: str, client=None):
        self.distribution_id = distribution_id
        # CloudFront is a global service addressed through us-east-1
        self.client = client or boto3.client('cloudfront', region_name='us-east-1')

    def invalidate_paths(self, paths: List[str]) -> Optional[str]:
        caller_reference = f"batch-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        response = self.client.create_invalidation(
            DistributionId=self.distribution_id,
            InvalidationBatch={
                'CallerReference': caller_reference,
                'Paths': {'Quantity': len(paths), 'Items': list(paths)},
            },
        )
        invalidation_id = response.get('Invalidation', {}).get('Id')
        logger.info(f"CloudFront invalidation {invalidation_id} requested for {paths}")
        return invalidation_id


def create_invalidator() -> CacheInvalidator:
    """Create the invalidator configured under ``cdn``."""
    from dubcast import settings

    provider = settings.get_cdn_provider()
    distribution_id = settings.get_cdn_distribution_id()
    if provider in (None, "", "none") or not distribution_id:
        return NullInvalidator()
    if provider == "cloudfront":
        return CloudFrontInvalidator(distribution_id)
    raise StorageBackendError(f"Unknown CDN provider: {provider}")
