#!/usr/bin/env python3
"""
Snapshot aggregation.

Merges the successful results of one run into a single ChartSnapshot.
Sources that publish several charts are split by chart type into
`<source>_<suffix>` keys; every other source is written under its bare id.
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from core.models.run import RunResult
from core.models.snapshot import ChartSnapshot

logger = logging.getLogger(__name__)


class Aggregator:
    """Builds the per-run snapshot from run results."""

    def __init__(self,
                 chart_type_suffixes: Optional[Dict[str, Dict[str, str]]] = None,
                 default_suffixes: Optional[Dict[str, str]] = None,
                 focus_artist: Optional[str] = None):
        """
        Initialize aggregator.

        Args:
            chart_type_suffixes: Per source, chart-type label -> key suffix
            default_suffixes: Per source, suffix for labels missing from the map
                (first mapped suffix when not given)
            focus_artist: Artist name carried in the snapshot payload
        """
        self.chart_type_suffixes = chart_type_suffixes or {}
        self.default_suffixes = default_suffixes or {}
        self.focus_artist = focus_artist

    def aggregate(self, results: Sequence[RunResult], collected_at: datetime) -> ChartSnapshot:
        """
        Build a snapshot from successful results only.

        Args:
            results: Run results of one run
            collected_at: Snapshot collection instant

        Returns:
            ChartSnapshot with entries in adapter order within each key
        """
        snapshot = ChartSnapshot(collected_at=collected_at, focus_artist=self.focus_artist)
        timestamp = snapshot.timestamp
        by_key: Dict[str, List[dict]] = OrderedDict()

        for result in results:
            if not result.is_success:
                continue

            suffixes = self.chart_type_suffixes.get(result.source_id)
            if not suffixes:
                by_key.setdefault(result.source_id, []).extend(
                    entry.to_snapshot_dict(timestamp) for entry in result.entries
                )
                continue

            # Every declared chart gets a key, even when its page yielded nothing
            for suffix in suffixes.values():
                by_key.setdefault(f"{result.source_id}_{suffix}", [])

            default_suffix = self.default_suffixes.get(result.source_id, next(iter(suffixes.values())))
            for entry in result.entries:
                suffix = suffixes.get(entry.chart_type)
                if suffix is None:
                    logger.warning(
                        f"Unmapped chart type '{entry.chart_type}' from {result.source_id}, "
                        f"filing under '{default_suffix}'"
                    )
                    suffix = default_suffix
                by_key[f"{result.source_id}_{suffix}"].append(entry.to_snapshot_dict(timestamp))

        snapshot.by_source_key = dict(by_key)
        logger.info(f"Aggregated {snapshot.entry_count()} entries under {len(by_key)} keys")
        return snapshot
