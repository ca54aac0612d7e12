"""
Provider manager for MangaMapper.

This module handles auto-discovery of the site adapters in the
providers/ package and selects the ones enabled in configuration.
"""
import importlib
import inspect
import logging
from typing import Dict, List, Optional, Type
from pathlib import Path

import httpx

from .base_provider import BaseProvider
from .config import Config
from .exceptions import ProviderError

logger = logging.getLogger(__name__)


def discover_provider_classes() -> Dict[str, Type[BaseProvider]]:
    """
    Find all adapter classes in the providers package.

    Scans the providers/ directory for Python files, imports them,
    and collects classes that inherit from BaseProvider.

    Returns:
        Mapping of provider_id to adapter class
    """
    classes: Dict[str, Type[BaseProvider]] = {}
    providers_dir = Path(__file__).parent.parent / 'providers'

    if not providers_dir.exists():
        logger.warning(f"Providers directory not found: {providers_dir}")
        return classes

    for provider_file in sorted(providers_dir.glob('*.py')):
        if provider_file.name == '__init__.py':
            continue

        module_name = f"providers.{provider_file.stem}"
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.error(f"Failed to import provider module {provider_file.name}: {e}")
            continue

        for name, obj in inspect.getmembers(module, inspect.isclass):
            if (issubclass(obj, BaseProvider) and
                    obj is not BaseProvider and
                    not inspect.isabstract(obj) and
                    obj.provider_id):

                if obj.provider_id in classes and classes[obj.provider_id] is not obj:
                    logger.warning(f"Duplicate provider ID '{obj.provider_id}' found in {provider_file.name}. Skipping.")
                    continue
                classes[obj.provider_id] = obj

    return classes


class ProviderManager:
    """
    Registry of the enabled site adapters.

    Adapter classes are auto-discovered; which of them are instantiated is
    decided by ``providers.enabled`` in the configuration. Adapters can
    also be registered directly, which is how tests plug in fakes.
    """

    def __init__(self, config: Optional[Config] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 discover: bool = True):
        """
        Initialize the provider manager.

        Args:
            config: Application configuration
            transport: httpx transport handed to every adapter
            discover: Whether to load the adapters from the providers package
        """
        self.config = config or Config()
        self.transport = transport
        self.providers: Dict[str, BaseProvider] = {}
        if discover:
            self._load_enabled_providers()
        logger.info(f"Loaded {len(self.providers)} providers: {list(self.providers.keys())}")

    def _load_enabled_providers(self):
        available = discover_provider_classes()
        for provider_id in self.config.enabled_providers:
            provider_class = available.get(provider_id)
            if provider_class is None:
                logger.warning(f"Enabled provider '{provider_id}' does not exist. Skipping.")
                continue

            try:
                self.register(provider_class(config=self.config, transport=self.transport))
            except ValueError as e:
                logger.error(f"Failed to initialize provider {provider_class.__name__}: {e}")

    def register(self, provider: BaseProvider):
        """Add (or replace) an adapter instance."""
        self.providers[provider.provider_id] = provider
        logger.debug(f"Registered provider: {provider}")

    def get_provider(self, provider_id: str) -> BaseProvider:
        """
        Get a provider instance by ID.

        Args:
            provider_id: The unique identifier for the provider

        Returns:
            BaseProvider instance

        Raises:
            ProviderError: If provider is not found
        """
        if provider_id not in self.providers:
            available = ', '.join(self.providers.keys())
            raise ProviderError(f"Provider '{provider_id}' not found. Available providers: {available}")

        return self.providers[provider_id]

    def list_providers(self) -> List[str]:
        """
        List all enabled provider IDs.

        Returns:
            List of provider ID strings
        """
        return list(self.providers.keys())

    def get_provider_info(self, provider_id: str) -> Optional[Dict]:
        """
        Get detailed information about a provider.

        Args:
            provider_id: The provider ID to get info for

        Returns:
            Dictionary with provider information or None if not found
        """
        if provider_id not in self.providers:
            return None

        provider = self.providers[provider_id]
        return {
            'id': provider.provider_id,
            'name': provider.provider_name,
            'base_url': provider.base_url,
            'threshold': self.config.get_match_threshold(provider.provider_id),
        }

    def __len__(self) -> int:
        """Return the number of loaded providers."""
        return len(self.providers)

    def __contains__(self, provider_id: str) -> bool:
        """Check if a provider ID is loaded."""
        return provider_id in self.providers

    def __iter__(self):
        """Iterate over all providers."""
        return iter(self.providers.values())
