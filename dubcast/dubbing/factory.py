"""
Factory for creating dubbing provider instances
"""

import logging

from .base import DubbingProvider
from .elevenlabs_client import ElevenLabsDubbingClient
from .exceptions import ProviderError

logger = logging.getLogger(__name__)


def create_dubbing_provider(provider_name: str = None) -> DubbingProvider:
    """
    Create the configured dubbing provider.

    Args:
        provider_name: Override for ``dubbing.provider``

    Returns:
        DubbingProvider instance

    Raises:
        ProviderError: If the provider is unknown
    """
    from dubcast import settings

    provider_name = (provider_name or settings.get_dubbing_provider()).lower()

    if provider_name == "elevenlabs":
        client = ElevenLabsDubbingClient(
            api_key=settings.get_dubbing_api_key(),
            base_url=settings.get_dubbing_base_url(),
            timeout=settings.get_dubbing_request_timeout(),
            prefer_video_output=settings.get_dubbing_prefer_video_output(),
        )
        if not client.validate_config():
            logger.warning("Dubbing provider is not configured; dub requests will fail per language")
        return client

    raise ProviderError(f"Unknown dubbing provider: {provider_name}")
