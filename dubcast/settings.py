"""
Settings management for Dubcast.

This module provides simple accessor functions for configuration values.
All configuration is stored in YAML files (default.yaml, config.yaml) with
environment overrides; secrets also fall back to their conventional
environment variable names.
"""

import logging
import os
from typing import Dict, Any, Optional, List

from .config import ConfigLoader

logger = logging.getLogger(__name__)

# Single source of configuration
_config_loader = ConfigLoader()


# ============================================================================
# Section Accessors
# ============================================================================

def get_app_config() -> Dict[str, Any]:
    """Get application settings"""
    return _config_loader.get_section('app') or {}


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration"""
    return _config_loader.get_section('logging') or {}


def get_hls_config() -> Dict[str, Any]:
    """Get HLS packaging configuration"""
    return _config_loader.get_section('hls') or {}


def get_transcode_config() -> Dict[str, Any]:
    """Get transcoder (ffmpeg) configuration"""
    return _config_loader.get_section('transcode') or {}


def get_pipeline_config() -> Dict[str, Any]:
    """Get pipeline orchestration configuration"""
    return _config_loader.get_section('pipeline') or {}


def get_dubbing_config() -> Dict[str, Any]:
    """Get dubbing provider configuration"""
    return _config_loader.get_section('dubbing') or {}


# ============================================================================
# App / Logging
# ============================================================================

def get_app_name() -> str:
    return get_app_config().get('name', 'Dubcast API')


def get_app_version() -> str:
    return str(get_app_config().get('version', '1.0.0'))


def get_log_level() -> str:
    return str(get_logging_config().get('level', 'INFO')).upper()


def get_log_file() -> Optional[str]:
    return get_logging_config().get('file')


# ============================================================================
# Database Configuration Accessors
# ============================================================================

def get_database_url() -> str:
    """Get database URL (DATABASE_URL wins over config)."""
    return os.environ.get('DATABASE_URL') or _config_loader.get('database.url', 'sqlite:///dubcast.db')


def get_database_pool_size() -> int:
    return int(_config_loader.get('database.pool_size', 5))


def get_database_max_overflow() -> int:
    return int(_config_loader.get('database.max_overflow', 10))


def get_database_echo() -> bool:
    return bool(_config_loader.get('database.echo', False))


# ============================================================================
# Storage / CDN Configuration Accessors
# ============================================================================

def get_storage_backend() -> str:
    """Get storage backend type ("s3" or "local")."""
    return _config_loader.get('storage.backend', 's3')


def get_storage_local_path() -> str:
    """Get local storage base path."""
    return _config_loader.get('storage.local.base_path', 'output')


def get_storage_s3_bucket() -> Optional[str]:
    """Get S3 bucket name."""
    return _config_loader.get('storage.s3.bucket') or os.environ.get('AWS_BUCKET_NAME')


def get_storage_s3_region() -> str:
    """Get S3 region."""
    return os.environ.get('AWS_REGION') or _config_loader.get('storage.s3.region', 'us-east-1')


def get_public_base_url() -> Optional[str]:
    """Get the CDN base URL used to build public URLs."""
    return _config_loader.get('storage.public_base_url') or os.environ.get('PUBLIC_CDN_URL')


def get_cdn_provider() -> str:
    return _config_loader.get('cdn.provider', 'cloudfront')


def get_cdn_distribution_id() -> Optional[str]:
    return _config_loader.get('cdn.distribution_id') or os.environ.get('CLOUDFRONT_DISTRIBUTION_ID')


# ============================================================================
# Dubbing Provider Accessors
# ============================================================================

def get_dubbing_provider() -> str:
    return get_dubbing_config().get('provider', 'elevenlabs')


def get_dubbing_api_key() -> Optional[str]:
    return get_dubbing_config().get('api_key') or os.environ.get('ELEVENLABS_API_KEY')


def get_dubbing_base_url() -> str:
    return get_dubbing_config().get('base_url', 'https://api.elevenlabs.io')


def get_dubbing_request_timeout() -> float:
    return float(get_dubbing_config().get('request_timeout_seconds', 120))


def get_dubbing_prefer_video_output() -> bool:
    return bool(get_dubbing_config().get('prefer_video_output', True))


def get_dub_poll_max_attempts() -> int:
    """
    Get the number of provider status polls before a language times out.

    Returns:
        int: Attempt count (minimum 1, default 120)
    """
    poll_cfg = get_dubbing_config().get('poll', {}) or {}
    configured = poll_cfg.get('max_attempts', 120)
    try:
        return max(1, int(configured))
    except (TypeError, ValueError):
        logger.warning(
            "Invalid dubbing.poll.max_attempts value '%s'. Falling back to 120.",
            configured,
        )
        return 120


def get_dub_poll_interval_seconds() -> float:
    """Get the fixed sleep between provider status polls (default 5s)."""
    poll_cfg = get_dubbing_config().get('poll', {}) or {}
    return max(0.0, float(poll_cfg.get('interval_seconds', 5)))


# ============================================================================
# HLS Accessors
# ============================================================================

def get_hls_version() -> int:
    return int(get_hls_config().get('version', 7))


def get_hls_segment_duration() -> int:
    return int(get_hls_config().get('segment_duration', 4))


def get_hls_group_id() -> str:
    return get_hls_config().get('group_id', 'aud')


def get_master_filename() -> str:
    return get_hls_config().get('master_filename', 'master.m3u8')


def get_key_prefix_template() -> str:
    return get_hls_config().get('key_prefix_template', 'assets/curriculumsection/{section_id}/')


def get_origin_language() -> str:
    return get_hls_config().get('origin_language', 'origin')


def get_origin_name() -> str:
    return get_hls_config().get('origin_name', 'ORIGIN')


def get_include_origin_track() -> bool:
    return bool(get_hls_config().get('include_origin_track', True))


def get_default_priority_languages() -> List[str]:
    value = get_hls_config().get('default_priority_languages', ['ja', 'ko'])
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return list(value or [])


def get_hls_video_config() -> Dict[str, Any]:
    defaults = {
        'bandwidth': 2500000,
        'resolution': '1920x1080',
        'codecs': 'avc1.4d401f,mp4a.40.2',
        'uri': 'video/video.m3u8',
    }
    defaults.update(get_hls_config().get('video', {}) or {})
    return defaults


# ============================================================================
# Transcode Accessors
# ============================================================================

def get_ffmpeg_path() -> str:
    return os.environ.get('FFMPEG_PATH') or get_transcode_config().get('ffmpeg_path', 'ffmpeg')


def get_transcode_timeout_seconds() -> int:
    return int(get_transcode_config().get('timeout_seconds', 3600))


def get_audio_transcode_config() -> Dict[str, Any]:
    defaults = {
        'codec': 'aac',
        'bitrate': '128k',
        'sample_rate': 48000,
        'channels': 2,
        'loudnorm': 'I=-16:LRA=11:TP=-1.5',
    }
    defaults.update(get_transcode_config().get('audio', {}) or {})
    return defaults


def get_video_transcode_config() -> Dict[str, Any]:
    defaults = {
        'codec': 'libx264',
        'profile': 'main',
        'level': '4.1',
        'preset': 'veryfast',
        'crf': 23,
        'keyint': 48,
    }
    defaults.update(get_transcode_config().get('video', {}) or {})
    return defaults


# ============================================================================
# Pipeline Accessors
# ============================================================================

def get_pipeline_max_workers() -> int:
    """
    Get maximum concurrent per-language units.

    Returns:
        int: Worker count (default: 4, min 1)
    """
    configured = get_pipeline_config().get('max_workers')
    if configured is not None:
        return max(1, int(configured))
    cpu_count = os.cpu_count() or 2
    return max(1, cpu_count // 2)


def get_pipeline_work_dir() -> Optional[str]:
    return get_pipeline_config().get('work_dir')


def get_keep_work_dir() -> bool:
    return bool(get_pipeline_config().get('keep_work_dir', False))


def get_force_regenerate_video() -> bool:
    return bool(get_pipeline_config().get('force_regenerate_video', False))


def get_reuse_remote_renditions() -> bool:
    return bool(get_pipeline_config().get('reuse_remote_renditions', True))


def get_rebuild_on_noop() -> bool:
    return bool(get_pipeline_config().get('rebuild_on_noop', False))


def get_stale_processing_minutes() -> int:
    return int(get_pipeline_config().get('stale_processing_minutes', 120))
