#!/usr/bin/env python3
"""
Melon chart source.

Melon publishes five rankings; each is fetched and parsed in turn. A chart
type that cannot be fetched contributes no entries but does not fail the
source.
"""

import logging
from datetime import datetime
from typing import List, Dict, Optional

from core.exceptions import SourceFetchError
from core.fetcher import ChartFetcher
from core.html_parser import HtmlElement
from core.models.chart import ChartEntry
from core.sources.base import HtmlChartSource, ChartTypeSpec, SourceMetadata
from core.text_sanitizer import clean_text, safe_int, parse_rank_change, normalize_url

logger = logging.getLogger(__name__)

MELON_CHART_TYPES = (
    ChartTypeSpec('top100', 'TOP100', 'https://www.melon.com/chart/index.htm'),
    ChartTypeSpec('hot100', 'HOT100', 'https://www.melon.com/chart/hot100/index.htm'),
    ChartTypeSpec('daily', '일간', 'https://www.melon.com/chart/day/index.htm'),
    ChartTypeSpec('weekly', '주간', 'https://www.melon.com/chart/week/index.htm'),
    ChartTypeSpec('monthly', '월간', 'https://www.melon.com/chart/month/index.htm'),
)


class MelonSource(HtmlChartSource):
    """Melon multi-chart source."""

    source_id = 'melon'
    ROW_SELECTOR = 'tr[data-song-no]'

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.chart_types = tuple(self.config.get('chart_types', MELON_CHART_TYPES))

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(
            source_id=self.source_id,
            display_name='Melon',
            homepage='https://www.melon.com',
            chart_types=len(self.chart_types)
        )

    def chart_type_suffixes(self) -> Dict[str, str]:
        return {chart_type.display_name: chart_type.key for chart_type in self.chart_types}

    async def collect(self, fetcher: ChartFetcher) -> List[ChartEntry]:
        entries = []
        for chart_type in self.chart_types:
            logger.info(f"Crawling Melon {chart_type.display_name} chart...")
            try:
                document = await self.fetch_document(fetcher, chart_type.url)
            except SourceFetchError as e:
                logger.error(f"Failed to fetch Melon {chart_type.display_name} chart: {e.message}")
                continue

            chart_entries = await self.parse_document(document.text, self.now(), chart_type)
            logger.info(f"Successfully crawled {len(chart_entries)} songs from Melon {chart_type.display_name}")
            entries.extend(chart_entries)

        return entries

    def parse_row(self, row: HtmlElement, collected_at: datetime,
                  chart_type: Optional[ChartTypeSpec] = None) -> Optional[ChartEntry]:
        rank_el = row.select_one('.rank')
        title_el = row.select_one('.ellipsis.rank01 a')
        artist_el = row.select_one('.ellipsis.rank02 a')
        album_el = row.select_one('.ellipsis.rank03 a')
        img_el = row.select_one('img')
        change_el = row.select_one('.rank_wrap')

        return ChartEntry(
            rank=safe_int(rank_el.text) if rank_el else 0,
            title=clean_text(title_el.text) if title_el else '',
            artist=clean_text(artist_el.text) if artist_el else '',
            album=clean_text(album_el.text) if album_el else None,
            art_url=normalize_url(img_el.get_attribute('src')) if img_el else None,
            rank_change=parse_rank_change(change_el.get_attribute('title')) if change_el else 0,
            source_id=self.source_id,
            chart_type=chart_type.display_name if chart_type else None,
            collected_at=collected_at
        )
