#!/usr/bin/env python3
"""
Genie TOP200 chart source.
"""

import logging
from datetime import datetime
from typing import List, Optional

from core.fetcher import ChartFetcher
from core.html_parser import HtmlElement
from core.models.chart import ChartEntry
from core.sources.base import HtmlChartSource, ChartTypeSpec, SourceMetadata
from core.text_sanitizer import clean_text, safe_int, normalize_url

logger = logging.getLogger(__name__)

GENIE_CHART_URL = 'https://www.genie.co.kr/chart/top200'


class GenieSource(HtmlChartSource):
    """Genie single-chart source."""

    source_id = 'genie'
    ROW_SELECTOR = 'tr.list'

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(
            source_id=self.source_id,
            display_name='Genie',
            homepage='https://www.genie.co.kr'
        )

    async def collect(self, fetcher: ChartFetcher) -> List[ChartEntry]:
        url = self.config.get('url', GENIE_CHART_URL)
        document = await self.fetch_document(fetcher, url)
        return await self.parse_document(document.text, self.now())

    def parse_row(self, row: HtmlElement, collected_at: datetime,
                  chart_type: Optional[ChartTypeSpec] = None) -> Optional[ChartEntry]:
        rank_el = row.select_one('.number')
        title_el = row.select_one('.info .title')
        artist_el = row.select_one('.info .artist')
        album_el = row.select_one('.info .albumtitle')
        img_el = row.select_one('a.cover img')

        return ChartEntry(
            rank=safe_int(rank_el.text) if rank_el else 0,
            title=clean_text(title_el.text) if title_el else '',
            artist=clean_text(artist_el.text) if artist_el else '',
            album=clean_text(album_el.text) if album_el else None,
            art_url=normalize_url(img_el.get_attribute('src')) if img_el else None,
            rank_change=self._rank_change(row),
            source_id=self.source_id,
            collected_at=collected_at
        )

    @staticmethod
    def _rank_change(row: HtmlElement) -> int:
        # The number cell reads "1 2 상승"; only the movement span is signed
        up = row.select_one('.rank-up')
        if up:
            return safe_int(up.text)
        down = row.select_one('.rank-down')
        if down:
            return -safe_int(down.text)
        return 0
