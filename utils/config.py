"""
Configuration management for LiveLens.
"""
import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

from utils.constants import CONFIGS_DIR
from utils.failures import ConfigError

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    'LIVELENS_CAMERA_INDEX': 'camera.index',
    'LIVELENS_MODEL_PATH': 'ai.model_path',
    'LIVELENS_LOG_LEVEL': 'logging.level',
}


class Config:
    """Configuration manager that merges multiple domain-specific JSON files."""

    def __init__(self, configs_dir: Optional[str] = None):
        """
        Initialize configuration by loading all JSON files in the configs directory.

        Args:
            configs_dir: Path to directory containing JSON configs (defaults to ./configs)
        """
        self.config: Dict[str, Any] = {}

        configs_dir = Path(configs_dir) if configs_dir else CONFIGS_DIR

        if configs_dir.exists() and configs_dir.is_dir():
            for config_file in sorted(configs_dir.glob("*.json")):
                try:
                    self.load_from_file(str(config_file))
                except ConfigError as e:
                    # Logging is not configured yet; the root logger still reaches stderr.
                    logging.getLogger("Config").warning(e.message)

        self._load_from_env()

    def _load_from_env(self):
        """Apply LIVELENS_* environment variable overrides."""
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.set(key, value)

    def load_from_file(self, path: str):
        """Load configuration from a JSON file and merge it in."""
        try:
            with open(path, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        self._merge_config(user_config)

    def _merge_config(self, user_config: Dict[str, Any]):
        """Merge user config with defaults recursively."""
        def update(d, u):
            for k, v in u.items():
                if isinstance(v, dict):
                    d[k] = update(d.get(k, {}), v)
                else:
                    d[k] = v
            return d

        update(self.config, user_config)

    def set(self, key: str, value: Any):
        """Set a dotted configuration key, creating sections as needed."""
        keys = key.split('.')
        section = self.config
        for k in keys[:-1]:
            section = section.setdefault(k, {})
        section[keys[-1]] = value

    def get_int(self, key: str, default: int = 0) -> int:
        """Get config value as integer."""
        val = self.get(key, default)
        try:
            return int(val)
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get config value as float."""
        val = self.get(key, default)
        try:
            return float(val)
        except (ValueError, TypeError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get config value as boolean."""
        val = self.get(key, default)
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ('true', '1', 'yes', 'on')
        return bool(val)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
