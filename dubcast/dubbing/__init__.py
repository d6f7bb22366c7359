"""
Dubbing provider clients.
"""

from .base import DubbingJob, DubbingJobStatus, DubbingProvider, wait_for_job
from .elevenlabs_client import ElevenLabsDubbingClient
from .exceptions import ProviderError, ProviderTimeoutError
from .factory import create_dubbing_provider

__all__ = [
    'DubbingJob',
    'DubbingJobStatus',
    'DubbingProvider',
    'wait_for_job',
    'ElevenLabsDubbingClient',
    'ProviderError',
    'ProviderTimeoutError',
    'create_dubbing_provider',
]
