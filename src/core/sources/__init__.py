#!/usr/bin/env python3
"""
Chart sources: pluggable adapters for streaming-service chart pages.
"""

from .registry import (
    SourceRegistry, register_source, get_source, list_available_sources, get_registry
)
from .base import ChartSource, HtmlChartSource, DeclaredEndpointSource, ChartTypeSpec, SourceMetadata

# Import to trigger auto-registration
from . import auto_register

__all__ = [
    'SourceRegistry', 'register_source', 'get_source', 'list_available_sources', 'get_registry',
    'ChartSource', 'HtmlChartSource', 'DeclaredEndpointSource', 'ChartTypeSpec', 'SourceMetadata'
]
