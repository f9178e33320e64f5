#!/usr/bin/env python3
"""
Run-now entry point.

One run: resolve sources, crawl them concurrently, aggregate the successful
results into a snapshot, hand log rows and the snapshot to the run logger,
and return a summary. run_now() never raises.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

import pytz

from core.aggregator import Aggregator
from core.fetcher import ChartFetcher
from core.models.run import RunSummary
from core.orchestrator import RunOrchestrator
from core.run_logger import RunLogger
from core.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)


class ChartPipeline:
    """Crawl -> validate -> aggregate -> log, across configured sources."""

    def __init__(self,
                 registry: SourceRegistry,
                 orchestrator: RunOrchestrator,
                 aggregator: Aggregator,
                 run_logger: Optional[RunLogger],
                 fetcher_factory: Callable[[], ChartFetcher],
                 source_ids: Optional[Sequence[str]] = None,
                 source_config: Optional[dict] = None,
                 timezone: str = 'Asia/Seoul',
                 drain_timeout: float = 30.0):
        """
        Initialize pipeline.

        Args:
            registry: Source registry
            orchestrator: Concurrent runner
            aggregator: Snapshot builder
            run_logger: Store side effects; None disables persistence
            fetcher_factory: Creates the fetcher for one run
            source_ids: Default sources per run (all registered when None)
            source_config: Configuration passed to every source
            timezone: Zone of snapshot and summary timestamps
            drain_timeout: Seconds the sync entry point waits for store writes
        """
        self.registry = registry
        self.orchestrator = orchestrator
        self.aggregator = aggregator
        self.run_logger = run_logger
        self.fetcher_factory = fetcher_factory
        self.source_ids = list(source_ids) if source_ids else None
        self.source_config = source_config or {}
        self.tz = pytz.timezone(timezone)
        self.drain_timeout = drain_timeout
        self._running = False

    def _now(self) -> datetime:
        return datetime.now(self.tz)

    async def run_now(self, source_ids: Optional[Sequence[str]] = None, persist: bool = True) -> RunSummary:
        """
        Execute one run.

        Args:
            source_ids: Sources to crawl, overriding the configured default
            persist: Write log rows and the snapshot (False for dry runs)

        Returns:
            RunSummary; success is False only when the run could not complete
        """
        start_time = time.monotonic()

        if self._running:
            logger.warning("Crawl requested while another run is in progress")
            return RunSummary(
                success=False,
                message='A crawl run is already in progress',
                timestamp=self._now().replace(microsecond=0).isoformat(),
                error_message='run already in progress'
            )

        self._running = True
        try:
            return await self._execute(source_ids, persist, start_time)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Chart crawler error: {e}", exc_info=True)
            return RunSummary(
                success=False,
                message='Chart crawling failed',
                timestamp=self._now().replace(microsecond=0).isoformat(),
                execution_time_ms=int((time.monotonic() - start_time) * 1000),
                error_message=str(e) or e.__class__.__name__
            )
        finally:
            self._running = False

    async def _execute(self, source_ids: Optional[Sequence[str]], persist: bool, start_time: float) -> RunSummary:
        names = list(source_ids) if source_ids else self.source_ids
        if names:
            names = list(dict.fromkeys(names))
        sources = self.registry.get_sources(names, self.source_config)
        collected_at = self._now()
        timestamp = collected_at.replace(microsecond=0).isoformat()
        logger.info(f"[{timestamp}] Starting chart crawling for {len(sources)} sources")

        async with self.fetcher_factory() as fetcher:
            results = await self.orchestrator.run_all(sources, fetcher)

        snapshot = self.aggregator.aggregate(results, collected_at)

        if persist and self.run_logger is not None:
            self.run_logger.dispatch(results, snapshot, collected_at)

        summary = RunSummary(
            success=True,
            message='',
            timestamp=timestamp,
            execution_time_ms=int((time.monotonic() - start_time) * 1000),
            results=results,
            data=snapshot.to_dict()
        )
        summary.message = (
            f"{summary.platforms_successful}/{summary.platforms_total} platforms successful, "
            f"{summary.total_songs} songs total"
        )
        logger.info(f"[{timestamp}] Chart crawling completed in {summary.execution_time_ms}ms - {summary.message}")
        return summary

    async def run_and_drain(self, source_ids: Optional[Sequence[str]] = None, persist: bool = True) -> RunSummary:
        """Run, then give pending store writes a bounded chance to finish."""
        summary = await self.run_now(source_ids, persist)
        if self.run_logger is not None:
            await self.run_logger.drain(self.drain_timeout)
        return summary

    def run_now_sync(self, source_ids: Optional[Sequence[str]] = None, persist: bool = True) -> RunSummary:
        """Synchronous wrapper for CLI use."""
        return asyncio.run(self.run_and_drain(source_ids, persist))
