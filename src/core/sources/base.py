#!/usr/bin/env python3
"""
Base classes for chart sources.

Defines the adapter interface every chart source implements, plus the
shared machinery for HTML chart pages: timing, row-level error isolation
and validation of every constructed entry.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Dict, Any, Optional

import pytz

from core.exceptions import ErrorKind, SourceError, SourceFetchError, SourceNotImplementedError
from core.fetcher import ChartFetcher, Document, FetchFailure
from core.html_parser import HtmlParser, HtmlElement
from core.models.chart import ChartEntry
from core.models.run import RunResult
from core.validation import is_valid

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Asia/Seoul'


@dataclass(frozen=True)
class SourceMetadata:
    """Metadata about a chart source."""
    source_id: str
    display_name: str
    homepage: str
    chart_types: int = 1


@dataclass(frozen=True)
class ChartTypeSpec:
    """One chart published by a source: snapshot suffix, site label and page URL."""
    key: str
    display_name: str
    url: str


class ChartSource(ABC):
    """
    Abstract base class for all chart sources.

    crawl() never raises: every outcome, including unexpected exceptions,
    becomes a RunResult.
    """

    source_id: str = ''

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize chart source.

        Args:
            config: Source-specific configuration
        """
        self.config = config or {}
        self.tz = pytz.timezone(self.config.get('timezone', DEFAULT_TIMEZONE))

    @abstractmethod
    def get_metadata(self) -> SourceMetadata:
        """Get metadata about this source."""
        pass

    @abstractmethod
    async def collect(self, fetcher: ChartFetcher) -> List[ChartEntry]:
        """
        Fetch and extract this source's entries.

        Raises:
            SourceError: typed failure that becomes a failed RunResult
        """
        pass

    def chart_type_suffixes(self) -> Dict[str, str]:
        """Map of chart-type label to snapshot key suffix (multi-chart sources only)."""
        return {}

    def now(self) -> datetime:
        """Collection instant in the source's fixed timezone."""
        return datetime.now(self.tz)

    async def crawl(self, fetcher: ChartFetcher) -> RunResult:
        """
        Crawl this source once.

        Args:
            fetcher: Shared fetcher for the run

        Returns:
            RunResult with timing; failed on typed or unexpected errors
        """
        start_time = time.monotonic()
        logger.info(f"Starting {self.source_id} crawl...")

        try:
            entries = await self.collect(fetcher)
        except SourceError as e:
            logger.error(f"{self.source_id} crawl failed: {e.message}")
            return RunResult.failure(self.source_id, self._elapsed_ms(start_time), e.message, e.error_kind)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected error crawling {self.source_id}: {e}", exc_info=True)
            return RunResult.failure(
                self.source_id,
                self._elapsed_ms(start_time),
                str(e) or e.__class__.__name__,
                ErrorKind.ADAPTER_ERROR
            )

        duration_ms = self._elapsed_ms(start_time)
        logger.info(f"Crawled {len(entries)} entries from {self.source_id} in {duration_ms}ms")
        return RunResult.success(self.source_id, entries, duration_ms)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return max(int((time.monotonic() - start_time) * 1000), 0)

    async def fetch_document(self, fetcher: ChartFetcher, url: str) -> Document:
        """Fetch a page, raising SourceFetchError on failure."""
        outcome = await fetcher.fetch(url)
        if isinstance(outcome, FetchFailure):
            raise SourceFetchError(self.source_id, url, outcome)
        return outcome


class HtmlChartSource(ChartSource):
    """
    Base class for sources scraped from HTML chart tables.

    Subclasses declare the row selector and implement parse_row(). A row
    whose parsing raises is logged and skipped; entries failing validation
    are dropped.
    """

    ROW_SELECTOR: str = ''

    @abstractmethod
    def parse_row(self, row: HtmlElement, collected_at: datetime,
                  chart_type: Optional[ChartTypeSpec] = None) -> Optional[ChartEntry]:
        """Build an entry from one chart row."""
        pass

    async def parse_document(self, markup: str, collected_at: datetime,
                             chart_type: Optional[ChartTypeSpec] = None) -> List[ChartEntry]:
        """Parse a chart page off the event loop thread."""
        return await asyncio.to_thread(self.extract_entries, markup, collected_at, chart_type)

    def extract_entries(self, markup: str, collected_at: datetime,
                        chart_type: Optional[ChartTypeSpec] = None) -> List[ChartEntry]:
        """
        Walk the repeating row structure of a chart page.

        Args:
            markup: Page HTML
            collected_at: Collection instant stamped on every entry
            chart_type: Chart being parsed, for multi-chart sources

        Returns:
            Valid entries in page order
        """
        parser = HtmlParser(markup)
        rows = parser.select_all(self.ROW_SELECTOR)
        label = f"{self.source_id} {chart_type.display_name}" if chart_type else self.source_id
        logger.debug(f"Found {len(rows)} rows in {label} chart")

        entries = []
        for row in rows:
            try:
                entry = self.parse_row(row, collected_at, chart_type)
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Error parsing {label} row ({ErrorKind.PARSE_ROW_ERROR.value}): {e}")
                continue

            if entry is not None and is_valid(entry):
                entries.append(entry)

        return entries


class DeclaredEndpointSource(ChartSource):
    """
    Source with a known chart URL but no markup extraction yet.

    The URL is fetched to confirm reachability; a reachable page still
    fails the source with `not_implemented` so no placeholder data is
    ever written.
    """

    CHART_URL: str = ''

    async def collect(self, fetcher: ChartFetcher) -> List[ChartEntry]:
        await self.fetch_document(fetcher, self.CHART_URL)
        raise SourceNotImplementedError(self.source_id, self.CHART_URL)
