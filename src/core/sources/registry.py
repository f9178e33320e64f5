#!/usr/bin/env python3
"""
Chart source registry for dynamic source management.

Provides centralized registration and discovery of chart sources.
"""

import logging
from typing import Dict, List, Type, Optional, Iterable
from .base import ChartSource

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Registry for chart sources."""

    def __init__(self):
        """Initialize empty registry."""
        self._sources: Dict[str, Type[ChartSource]] = {}

    def register_source(self, source_class: Type[ChartSource], name: Optional[str] = None):
        """
        Register a chart source class.

        Args:
            source_class: ChartSource subclass to register
            name: Optional custom name (uses source_id if not provided)
        """
        if name is None:
            name = source_class.source_id or source_class.__name__.lower().replace('source', '')

        self._sources[name] = source_class
        logger.debug(f"Registered chart source: {name}")

    def get_source(self, name: str, config: Optional[dict] = None) -> ChartSource:
        """
        Get a chart source instance.

        Args:
            name: Source name
            config: Configuration for the source

        Returns:
            ChartSource instance

        Raises:
            KeyError: If source not found
        """
        if name not in self._sources:
            available = list(self._sources.keys())
            raise KeyError(f"Source '{name}' not found. Available: {available}")

        # New instance per call so runs never share adapter state
        source_class = self._sources[name]
        return source_class(config)

    def get_sources(self, names: Optional[Iterable[str]] = None,
                    config: Optional[dict] = None) -> List[ChartSource]:
        """
        Instantiate sources in the requested order.

        Args:
            names: Source names; all registered sources when None
            config: Configuration passed to every source

        Returns:
            Source instances, one per requested name

        Raises:
            KeyError: If any name is not registered
        """
        if names is None:
            names = self.list_available_sources()
        return [self.get_source(name, config) for name in names]

    def list_available_sources(self) -> List[str]:
        """Get list of available source names."""
        return list(self._sources.keys())

    def chart_type_suffixes(self) -> Dict[str, Dict[str, str]]:
        """Chart-type label to snapshot suffix maps for multi-chart sources."""
        suffixes = {}
        for name, source_class in self._sources.items():
            mapping = source_class().chart_type_suffixes()
            if mapping:
                suffixes[name] = mapping
        return suffixes


# Global registry instance
_global_registry = SourceRegistry()


def get_registry() -> SourceRegistry:
    """Get the global registry."""
    return _global_registry


def register_source(source_class: Type[ChartSource], name: Optional[str] = None):
    """Register a source in the global registry."""
    _global_registry.register_source(source_class, name)


def get_source(name: str, config: Optional[dict] = None) -> ChartSource:
    """Get a source from the global registry."""
    return _global_registry.get_source(name, config)


def list_available_sources() -> List[str]:
    """List available sources in the global registry."""
    return _global_registry.list_available_sources()
