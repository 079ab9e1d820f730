"""
Global configuration management for viral-score.

Implements Singleton pattern to ensure single source of truth for global settings.
Configuration hierarchy (highest to lowest priority):
1. Arguments passed directly to constructors (PopularityPredictor, ArtifactCache, ...)
2. Runtime overrides via set() / merge()
3. Global config file (configs/global_config.yaml)
4. Hardcoded defaults

Example:
    >>> from viral_score.config import get_global_config
    >>> config = get_global_config()
    >>> version = config.get('model.version')
    >>> db_path = config.get_path('cache.db_path')
"""

import copy
import yaml
import logging
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'model': {
        'key': 'popularity-model',
        'version': 'v1',
        'url': 'models/popularity_model.pt',
        'engine': 'torchscript',
        'device': 'cpu',
    },
    'cache': {
        'db_path': '~/.viral_score/artifacts.db',
        'ttl_days': 30,
    },
    'download': {
        'chunk_size': 1024 * 1024,
        'timeout': 60,
    },
    'upload': {
        'max_bytes': 10 * 1024 * 1024,
    },
    'log_dir': 'logs/',
    'logging': {
        'level': 'INFO',
        'log_to_file': False,
        'log_to_console': True,
    },
}


class GlobalConfig:
    """
    Singleton class for global configuration management.

    Loads configuration from configs/global_config.yaml and provides
    access to settings across all modules.
    """

    _instance: Optional['GlobalConfig'] = None
    _config: Dict[str, Any] = {}
    _loaded: bool = False

    def __new__(cls) -> 'GlobalConfig':
        """Singleton pattern: ensure only one instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration (only loads once)."""
        if not self._loaded:
            self._load_config()
            self._loaded = True

    def _load_config(self) -> None:
        """Load configuration from YAML file, layered over the defaults."""
        # viral-score/viral_score/config.py -> viral-score/
        project_root = Path(__file__).resolve().parent.parent
        config_path = project_root / 'configs' / 'global_config.yaml'

        self._config = self._get_default_config()

        if config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
                self._deep_merge(self._config, file_config)
                logger.info(f"Loaded global config from: {config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load global config: {e}. Using defaults.")
        else:
            logger.debug(f"Global config not found at {config_path}. Using defaults.")

    def _get_default_config(self) -> Dict[str, Any]:
        """Return hardcoded default configuration."""
        return copy.deepcopy(DEFAULT_CONFIG)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key (supports nested keys with dots).

        Args:
            key: Configuration key (e.g., 'log_dir' or 'model.version')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_path(self, key: str, default: str = '') -> Path:
        """Get configuration value as an expanded Path object."""
        path_str = self.get(key, default)
        return Path(path_str).expanduser()

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer."""
        value = self.get(key, default)
        try:
            return int(value)
        except (ValueError, TypeError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ('true', 'yes', '1', 'on')
        return bool(value)

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value (runtime only, not persisted).

        Example:
            >>> config = get_global_config()
            >>> config.set('model.version', 'v2')
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def reload(self) -> None:
        """Reload configuration from file, dropping runtime overrides."""
        self._loaded = False
        self._load_config()
        self._loaded = True
        logger.info("Global configuration reloaded")

    def to_dict(self) -> Dict[str, Any]:
        """Return full configuration as dictionary."""
        return copy.deepcopy(self._config)

    def merge(self, other_config: Dict[str, Any]) -> None:
        """
        Merge another configuration dict into global config.

        Example:
            >>> config = get_global_config()
            >>> config.merge({'model': {'version': 'v2'}})
        """
        self._deep_merge(self._config, other_config)

    def _deep_merge(self, base: Dict, updates: Dict) -> None:
        """Recursively merge updates into base dictionary."""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value


_global_config_instance: Optional[GlobalConfig] = None


def get_global_config() -> GlobalConfig:
    """Get the global configuration instance (Singleton)."""
    global _global_config_instance
    if _global_config_instance is None:
        _global_config_instance = GlobalConfig()
    return _global_config_instance


def setup_logging() -> None:
    """
    Setup logging based on global configuration.

    Should be called once at application startup.

    Example:
        >>> from viral_score.config import setup_logging
        >>> setup_logging()
    """
    config = get_global_config()

    log_level = config.get('logging.level', 'INFO')
    log_format = config.get(
        'logging.format',
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    date_format = config.get('logging.date_format', '%Y-%m-%d %H:%M:%S')
    log_to_file = config.get_bool('logging.log_to_file', False)
    log_to_console = config.get_bool('logging.log_to_console', True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format, datefmt=date_format)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_to_file:
        log_dir = config.get_path('log_dir')
        log_dir.mkdir(parents=True, exist_ok=True)

        from logging.handlers import RotatingFileHandler

        max_bytes = config.get_int('logging.max_log_size_mb', 10) * 1024 * 1024
        backup_count = config.get_int('logging.backup_count', 3)

        file_handler = RotatingFileHandler(
            log_dir / 'viral-score.log',
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Quiet noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    logger.info(f"Logging configured: level={log_level}, console={log_to_console}, file={log_to_file}")


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, returning a new dictionary.

    Example:
        >>> base = {'a': 1, 'nested': {'b': 2, 'c': 3}}
        >>> updates = {'nested': {'b': 20, 'd': 4}}
        >>> result = deep_merge(base, updates)
        >>> # result = {'a': 1, 'nested': {'b': 20, 'c': 3, 'd': 4}}
    """
    result = copy.deepcopy(base)
    _deep_merge_dicts(result, updates)
    return result


def _deep_merge_dicts(base: Dict, updates: Dict) -> None:
    """Helper for deep dictionary merge (in-place)."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge_dicts(base[key], value)
        else:
            base[key] = value


__all__ = [
    'DEFAULT_CONFIG',
    'GlobalConfig',
    'get_global_config',
    'setup_logging',
    'deep_merge'
]
