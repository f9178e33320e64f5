#!/usr/bin/env python3
"""
Chart entry data model.

Represents one ranked song scraped from one chart source.
"""

from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class ChartEntry:
    """
    A single ranked item from one source.

    `chart_type` carries the source's own (already localized) chart label and
    is only set for sources that publish several charts.
    """
    rank: int
    title: str
    artist: str
    source_id: str
    collected_at: datetime
    album: Optional[str] = None
    art_url: Optional[str] = None
    rank_change: int = 0
    chart_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for log diagnostics and JSON serialization."""
        return {
            'rank': self.rank,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'albumArt': self.art_url,
            'change': self.rank_change,
            'service': self.source_id,
            'chart_type': self.chart_type,
            'timestamp': self.collected_at.isoformat()
        }

    def to_snapshot_dict(self, timestamp: str) -> Dict[str, Any]:
        """Simplified form stored in the aggregated snapshot."""
        return {
            'rank': self.rank,
            'title': self.title,
            'artist': self.artist,
            'album': self.album or '',
            'albumArt': self.art_url or '',
            'change': self.rank_change,
            'timestamp': timestamp
        }

    def __repr__(self):
        return f"ChartEntry(rank={self.rank}, title='{self.title[:40]}', source='{self.source_id}')"
