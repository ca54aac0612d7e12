"""
Configuration management for MangaMapper.

This module handles loading and managing application settings from
YAML configuration files with proper defaults.
"""
import copy
import logging
import os
from pathlib import Path
from typing import Dict, List, Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)


class Config:
    """
    Configuration manager for MangaMapper.

    This class loads settings from YAML files and provides
    easy access to configuration values with proper defaults.

    Features:
    - YAML configuration file loading
    - MANGAMAPPER_CONFIG environment variable for the file location
    - Recursive merge of the file over built-in defaults
    - Per-provider match thresholds
    """

    ENV_VAR = 'MANGAMAPPER_CONFIG'

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default locations.
            overrides: Values merged over the loaded configuration (used by tests and the CLI)
        """
        self.config_path = self._find_config_file(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()
        if overrides:
            self._config = self._merge_configs(self._config, overrides)

    def _find_config_file(self, config_path: Optional[str] = None) -> Path:
        """
        Find the configuration file to load.

        Args:
            config_path: Explicit path to config file

        Returns:
            Path to the configuration file to use
        """
        explicit = config_path or os.environ.get(self.ENV_VAR)
        if explicit:
            path = Path(explicit)
            if path.exists():
                return path
            logger.warning(f"Config file not found: {path}")

        # Try default locations
        search_paths = [
            Path.cwd() / 'config' / 'settings.yaml',
            Path.cwd() / 'settings.yaml',
            Path.home() / '.mangamapper' / 'settings.yaml',
        ]

        for path in search_paths:
            if path.exists():
                logger.info(f"Found config file: {path}")
                return path

        # Return default path even if it doesn't exist
        default_path = Path.cwd() / 'config' / 'settings.yaml'
        logger.debug(f"Using default config path: {default_path}")
        return default_path

    def _load_config(self):
        """Load configuration from file."""
        if not self.config_path.exists():
            logger.debug(f"Config file not found: {self.config_path}. Using defaults.")
            self._config = self._get_default_config()
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config file: {e}. Using defaults.")
            self._config = self._get_default_config()
            return

        if not isinstance(file_config, dict):
            logger.error(f"Config file {self.config_path} is not a mapping. Using defaults.")
            self._config = self._get_default_config()
            return

        # Merge with defaults
        self._config = self._merge_configs(self._get_default_config(), file_config)
        logger.info(f"Loaded configuration from {self.config_path}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            'network': {
                'timeout': 30,
                'user_agent': DEFAULT_USER_AGENT,
            },
            'catalog': {
                'base_url': 'https://graphql.anilist.co',
            },
            'providers': {
                'enabled': ['mangadex', 'asurascans', 'mangapark', 'mangabuddy', 'mangakakalot'],
            },
            'matching': {
                'thresholds': {
                    'default': 0.4,
                    'mangadex': 0.4,
                    'asurascans': 0.3,
                    'mangapark': 0.3,
                    'mangabuddy': 0.3,
                    'mangakakalot': 0.3,
                },
            },
            'chapters': {
                'generation_coverage': 0.5,
            },
            'logging': {
                'level': 'INFO',
                'file': None,
            },
        }

    def _merge_configs(self, defaults: Dict[str, Any], user_config: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults."""
        result = copy.deepcopy(defaults)

        for key, value in user_config.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (dot notation: 'network.timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any):
        """
        Set a configuration value.

        Args:
            key: Configuration key (dot notation: 'network.timeout')
            value: Value to set
        """
        keys = key.split('.')
        config = self._config

        # Navigate to the parent of the target key
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self):
        """Save current configuration to file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, indent=2)

            logger.info(f"Saved configuration to {self.config_path}")

        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")
            raise

    # Convenience properties for commonly used settings
    @property
    def network_timeout(self) -> float:
        """Get per-request network timeout in seconds."""
        return float(self.get('network.timeout', 30))

    @property
    def user_agent(self) -> str:
        """Get the browser user agent sent to scraped sites."""
        return self.get('network.user_agent') or DEFAULT_USER_AGENT

    @property
    def catalog_url(self) -> str:
        """Get the catalog (AniList GraphQL) endpoint."""
        return self.get('catalog.base_url', 'https://graphql.anilist.co')

    @property
    def enabled_providers(self) -> List[str]:
        """Get list of enabled provider IDs."""
        return list(self.get('providers.enabled', []) or [])

    @property
    def generation_coverage(self) -> float:
        """Get the chapter coverage below which missing chapters are synthesised."""
        return float(self.get('chapters.generation_coverage', 0.5))

    @property
    def log_level(self) -> str:
        return self.get('logging.level', 'INFO')

    @property
    def log_file(self) -> Optional[str]:
        return self.get('logging.file')

    def get_match_threshold(self, provider_id: str) -> float:
        """
        Get the similarity threshold for a specific provider.

        Args:
            provider_id: Provider ID to get the threshold for

        Returns:
            Minimum similarity for a confident match
        """
        # Check provider-specific threshold first
        threshold = self.get(f'matching.thresholds.{provider_id}')
        if threshold is not None:
            return float(threshold)

        # Fall back to default
        return float(self.get('matching.thresholds.default', 0.4))

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path})"

    def __repr__(self) -> str:
        """Detailed string representation."""
        return f"Config(config_path='{self.config_path}', keys={list(self._config.keys())})"
