#!/usr/bin/env python3
"""
Aggregated chart snapshot data model.
"""

from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

SNAPSHOT_KEY = 'latest_chart_snapshot'


@dataclass
class ChartSnapshot:
    """
    Single current view of all sources' latest rankings.

    `by_source_key` maps `source_id` (or `source_id_suffix` for sources with
    several charts) to simplified entries in adapter order.
    """
    collected_at: datetime
    by_source_key: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    focus_artist: Optional[str] = None

    @property
    def timestamp(self) -> str:
        return self.collected_at.replace(microsecond=0).isoformat()

    @property
    def keys(self) -> List[str]:
        return list(self.by_source_key.keys())

    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.by_source_key.values())

    def to_dict(self) -> Dict[str, Any]:
        """Flat wire format read by the chart front end."""
        payload: Dict[str, Any] = {
            'collectedAtKST': self.timestamp,
            'last_updated': self.timestamp,
            'artist': self.focus_artist or '',
        }
        for key, entries in self.by_source_key.items():
            payload[key] = list(entries)
        return payload
