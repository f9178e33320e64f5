#!/usr/bin/env python3
"""
Text sanitization utilities for scraped chart markup.

Chart pages pad their cells with newlines, tabs and non-breaking spaces,
and mix numbers with labels ("1 2상승"). These helpers turn that into
clean strings and integers.
"""

import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

WHITESPACE_RE = re.compile(r'\s+')
INTEGER_RE = re.compile(r'\d+')

# Labels chart sites use next to rank movement numbers
RANK_UP_MARKERS = ('상승', 'up', '▲')
RANK_DOWN_MARKERS = ('하락', 'down', '▼')


def clean_text(text: Optional[str]) -> str:
    """
    Collapse all whitespace runs to single spaces and trim.

    Args:
        text: Raw text extracted from markup

    Returns:
        Normalized text ('' for None)
    """
    if not text:
        return ''

    return WHITESPACE_RE.sub(' ', text.replace('\xa0', ' ')).strip()


def safe_int(text: Optional[str], default: int = 0) -> int:
    """
    Parse the first run of digits in text.

    Rank cells often contain the rank followed by a movement label, so
    only the leading number is taken.

    Args:
        text: Text that may contain a number
        default: Value returned when no digits are present

    Returns:
        Parsed integer or default
    """
    if not text:
        return default

    match = INTEGER_RE.search(text)
    if not match:
        return default
    return int(match.group(0))


def parse_rank_change(text: Optional[str]) -> int:
    """
    Parse a rank movement label such as "2단계 상승" or "3 down" into a signed int.

    Args:
        text: Movement label

    Returns:
        Positive for upward movement, negative for downward, 0 otherwise
    """
    if not text:
        return 0

    amount = safe_int(text)
    lowered = text.lower()
    if any(marker in lowered for marker in RANK_DOWN_MARKERS):
        return -amount
    if any(marker in lowered for marker in RANK_UP_MARKERS):
        return amount
    return 0


def normalize_url(url: Optional[str], scheme: str = 'https') -> str:
    """Expand protocol-relative URLs ("//image.host/a.jpg")."""
    if not url:
        return ''

    url = url.strip()
    if url.startswith('//'):
        return f"{scheme}:{url}"
    return url
