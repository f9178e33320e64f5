#!/usr/bin/env python3
"""
Chart entry validation.

Every entry an adapter builds goes through is_valid() before it can reach
the aggregator.
"""

from core.models.chart import ChartEntry

MIN_RANK = 1
MAX_RANK = 200


def is_valid(entry: ChartEntry) -> bool:
    """
    Check the structural invariants of a chart entry.

    Args:
        entry: Entry to check

    Returns:
        True if rank is an integer in [1, 200] and title and artist are
        non-empty after trimming
    """
    if entry is None:
        return False

    rank = entry.rank
    if isinstance(rank, bool) or not isinstance(rank, int):
        return False
    if not MIN_RANK <= rank <= MAX_RANK:
        return False

    title = entry.title if isinstance(entry.title, str) else ''
    artist = entry.artist if isinstance(entry.artist, str) else ''
    return bool(title.strip()) and bool(artist.strip())
