"""Built-in chart sources."""

from .melon import MelonSource, MELON_CHART_TYPES
from .genie import GenieSource
from .declared import BugsSource, VibeSource, FloSource

__all__ = ['MelonSource', 'MELON_CHART_TYPES', 'GenieSource', 'BugsSource', 'VibeSource', 'FloSource']
