#!/usr/bin/env python3
"""
Auto-registration of all built-in chart sources.

Import this module to register them in the global registry.
"""

import logging
from .registry import register_source
from .charts import MelonSource, GenieSource, BugsSource, VibeSource, FloSource

logger = logging.getLogger(__name__)


def register_all_sources():
    """Register all built-in chart sources."""
    sources_to_register = [
        (MelonSource, 'melon'),
        (GenieSource, 'genie'),
        (BugsSource, 'bugs'),
        (VibeSource, 'vibe'),
        (FloSource, 'flo'),
    ]

    for source_class, name in sources_to_register:
        register_source(source_class, name)


# Auto-register on import
register_all_sources()
