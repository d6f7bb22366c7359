"""
Configuration loader for Dubcast

Handles loading and merging of YAML configuration files with environment variable overrides.
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = 'DUBCAST_'


class ConfigLoader:
    """
    Loads and manages configuration from YAML files with cascading priority:
    1. Default configuration (dubcast/config/default.yaml)
    2. User configuration (config/config.yaml at project root)
    3. Environment variable overrides (DUBCAST_SECTION_KEY format)
    """

    def __init__(self, user_config_path: Optional[str] = None):
        """
        Initialize configuration loader

        Args:
            user_config_path: Path to user config file (default: config/config.yaml at project root)
        """
        self.package_dir = Path(__file__).parent
        self.default_config_path = self.package_dir / "default.yaml"

        if user_config_path:
            self.user_config_path = Path(user_config_path)
        elif os.environ.get('DUBCAST_CONFIG'):
            self.user_config_path = Path(os.environ['DUBCAST_CONFIG'])
        else:
            # Go up two levels from dubcast/config/ to project root, then into config/
            project_root = self.package_dir.parent.parent
            self.user_config_path = project_root / "config" / "config.yaml"

        self.config = self._load_config()

    def _load_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML file and return as dictionary"""
        try:
            if not file_path.exists():
                logger.debug(f"Config file not found: {file_path}")
                return {}

            with open(file_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
                if config is None:
                    return {}
                return config
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Error loading config from {file_path}: {e}")
            return {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively merge two configuration dictionaries

        Args:
            base: Base configuration
            override: Configuration to merge on top

        Returns:
            Merged configuration
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _parse_env_value(env_value: str) -> Any:
        """Parse an override as int, float, bool, list or string."""
        try:
            if '.' in env_value:
                return float(env_value)
            return int(env_value)
        except ValueError:
            pass

        lowered = env_value.lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        if ',' in env_value:
            return [item.strip() for item in env_value.split(',') if item.strip()]
        return env_value

    @staticmethod
    def _resolve_path(config: Dict[str, Any], parts: List[str]) -> List[str]:
        """
        Group underscore-separated parts into config keys.

        Existing keys win, so DUBCAST_DUBBING_API_KEY resolves to
        ``dubbing.api_key`` rather than ``dubbing.api.key``. Unknown tails
        are joined into a single leaf key.
        """
        keys: List[str] = []
        current: Any = config
        i = 0
        while i < len(parts):
            matched = None
            if isinstance(current, dict):
                # Longest existing key first
                for j in range(len(parts), i, -1):
                    candidate = '_'.join(parts[i:j])
                    if candidate in current:
                        matched = (candidate, j)
                        break
            if matched is None:
                keys.append('_'.join(parts[i:]))
                break
            key, i = matched
            keys.append(key)
            current = current[key]
        return keys

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration

        Environment variables should be in format: DUBCAST_SECTION_KEY
        Example: DUBCAST_DUBBING_POLL_MAX_ATTEMPTS=60

        Args:
            config: Configuration dictionary

        Returns:
            Configuration with environment overrides applied
        """
        result = config.copy()

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX) or env_key == 'DUBCAST_CONFIG':
                continue

            parts = env_key[len(ENV_PREFIX):].lower().split('_')
            if len(parts) < 2:
                continue

            keys = self._resolve_path(result, parts)
            if len(keys) < 2:
                continue

            current = result
            for part in keys[:-1]:
                if part not in current:
                    current[part] = {}
                elif not isinstance(current[part], dict):
                    # Can't override non-dict value with nested structure
                    break
                else:
                    current[part] = dict(current[part])
                current = current[part]
            else:
                current[keys[-1]] = self._parse_env_value(env_value)
                logger.debug(f"Applied env override: {env_key} -> {'.'.join(keys)}")

        return result

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration with cascading priority

        Returns:
            Merged configuration dictionary
        """
        logger.debug(f"Loading default config from: {self.default_config_path}")
        config = self._load_yaml(self.default_config_path)

        if self.user_config_path.exists():
            logger.info(f"Loading user config from: {self.user_config_path}")
            user_config = self._load_yaml(self.user_config_path)
            config = self._merge_configs(config, user_config)
        else:
            logger.debug(f"No user config found at: {self.user_config_path}")

        config = self._apply_env_overrides(config)

        return config

    def get(self, *keys, default: Any = None) -> Any:
        """
        Get configuration value using dot notation or multiple keys

        Examples:
            config.get('hls', 'segment_duration')
            config.get('hls.segment_duration')
            config.get('transcode', 'audio', default={})
        """
        if len(keys) == 1 and isinstance(keys[0], str) and '.' in keys[0]:
            keys = keys[0].split('.')

        current = self.config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section, or an empty dict if not found"""
        return self.get(section, default={})

    def __repr__(self) -> str:
        return f"ConfigLoader(default={self.default_config_path}, user={self.user_config_path})"
