"""
Configuration Service Module

Engine tunables layered from built-in defaults, the repository template and
a per-user YAML file.
"""

from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import sys
import yaml
import threading
import logging

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path("config/default_config.yaml")
APP_DIR_NAME = "python-stream-player"

DEFAULTS: Dict[str, Any] = {
    'session': {
        'stop_delay_ms': 3000,
        'progress_interval_ms': 2000,
        'preload_threshold_ms': 60000,
        'load_attempts': 3,
        'load_retry_delay_ms': 500,
    },
    'playback': {
        'volume_normal': 1.0,
        'volume_duck': 0.2,
    },
    'playlist': {
        'generate_pages': 5,
        'generation_attempts': 3,
        'retry_delay_ms': 250,
        'load_page_size': 100,
        'max_load_pages': 50,
    },
    'recommendations': {
        'seed_count': 5,
        'target_yield': 24,      # Tracks per generation, split across the seeds
        'max_concurrency': 5,
        'history_limit': 500,
        'seed_randomness': 0.75,
        'home_randomness': 0.5,
        'page_randomness': 1.0,
    },
    'metadata': {
        'image_attempts': 3,
        'image_retry_delay_ms': 100,
        'image_timeout_seconds': 15.0,
        'default_gradient_color': '#121212',
    },
    'storage': {
        'data_dir': '',          # Empty: platform user data directory
    },
}


def _merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _merge_into(base[key], value)
        else:
            base[key] = value


def _fresh_defaults() -> Dict[str, Any]:
    return {section: dict(values) for section, values in DEFAULTS.items()}


class ConfigService:
    """
    Configuration Service - Singleton Pattern

    Without a path (or with the template path) the repository template and
    the user file are layered over the defaults, and save() writes the user
    file. Any other path is the only file read and the file save() writes.

    Usage Example:
        config = ConfigService()
        delay = config.get("session.stop_delay_ms", 3000)
        config.set("recommendations.target_yield", 30)
        config.save()
    """

    _instance: Optional['ConfigService'] = None
    _lock = threading.Lock()

    def __new__(cls, config_path: str = None) -> 'ConfigService':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: str = None):
        if self._initialized:
            return

        custom = Path(config_path) if config_path else None
        if custom is None or custom == TEMPLATE_PATH:
            self._save_path = self._get_user_config_path()
            self._layers: List[Path] = [TEMPLATE_PATH, self._save_path]
        else:
            self._save_path = custom
            self._layers = [custom]

        self._config: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._initialized = True

        self._load()

    @staticmethod
    def _get_user_config_path() -> Path:
        return ConfigService.get_user_data_dir() / "config.yaml"

    @staticmethod
    def get_user_data_dir() -> Path:
        """Platform-specific per-user directory for configuration and saved data"""
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        return base / APP_DIR_NAME

    @staticmethod
    def _read_layer(path: Path) -> Dict[str, Any]:
        """Mapping stored in a YAML file; empty when missing or unreadable"""
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring configuration file %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring configuration file %s: not a mapping", path)
            return {}
        return data

    def _load(self) -> None:
        config = _fresh_defaults()
        for path in self._layers:
            _merge_into(config, self._read_layer(path))
        with self._lock:
            self._config = config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key, e.g. "session.stop_delay_ms"
            default: Returned when any part of the key is missing
        """
        with self._lock:
            value = self._config
            try:
                for k in key.split('.'):
                    value = value[k]
                return value
            except (KeyError, TypeError):
                return default

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            *parents, leaf = key.split('.')
            node = self._config
            for k in parents:
                node = node.setdefault(k, {})
            node[leaf] = value

    def save(self) -> bool:
        """Write the current values to the save file; False on I/O failure"""
        try:
            self._save_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                with open(self._save_path, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, allow_unicode=True, default_flow_style=False)
        except OSError as e:
            logger.error("Failed to save configuration to %s: %s", self._save_path, e)
            return False
        logger.debug("Configuration saved to: %s", self._save_path)
        return True

    def reload(self) -> None:
        """Re-read every layer, discarding unsaved changes"""
        self._load()

    def reset(self) -> None:
        with self._lock:
            self._config = _fresh_defaults()

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the singleton (tests only)"""
        with cls._lock:
            cls._instance = None
