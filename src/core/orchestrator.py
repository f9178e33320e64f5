#!/usr/bin/env python3
"""
Concurrent run orchestration across chart sources.

Every source is crawled in its own task, bounded by a per-source timeout,
and the whole fan-out is bounded by a run deadline. The orchestrator always
returns exactly one RunResult per requested source, in request order.
"""

import asyncio
import logging
import time
from typing import List, Sequence

from core.exceptions import ErrorKind, ErrorRecovery
from core.fetcher import ChartFetcher
from core.models.run import RunResult
from core.sources.base import ChartSource

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """Fan-out/fan-in over chart sources."""

    def __init__(self,
                 per_source_timeout: float = 60.0,
                 run_deadline: float = 120.0,
                 max_retries: int = 0,
                 retry_backoff: float = 1.0):
        """
        Initialize orchestrator.

        Args:
            per_source_timeout: Seconds allowed for one crawl attempt of one source
            run_deadline: Seconds allowed for the whole run; supersedes per-source timeouts
            max_retries: Extra attempts for retryable failure kinds
            retry_backoff: Base delay in seconds for exponential backoff between attempts
        """
        self.per_source_timeout = per_source_timeout
        self.run_deadline = run_deadline
        self.max_retries = max(max_retries, 0)
        self.retry_backoff = retry_backoff

    async def run_all(self, sources: Sequence[ChartSource], fetcher: ChartFetcher) -> List[RunResult]:
        """
        Crawl all sources concurrently.

        Args:
            sources: Sources to crawl, in the order results should be returned
            fetcher: Shared fetcher (already entered)

        Returns:
            One RunResult per source, in request order
        """
        if not sources:
            return []

        start_time = time.monotonic()
        tasks = [
            asyncio.create_task(self._run_source(source, fetcher), name=f"crawl-{source.source_id}")
            for source in sources
        ]

        done, pending = await asyncio.wait(tasks, timeout=self.run_deadline)

        if pending:
            logger.warning(f"Run deadline of {self.run_deadline}s reached, cancelling {len(pending)} source(s)")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for source, task in zip(sources, tasks):
            results.append(self._result_from_task(source, task, start_time))

        successful = sum(1 for result in results if result.is_success)
        logger.info(f"Run complete: {successful}/{len(results)} sources successful")
        return results

    def _result_from_task(self, source: ChartSource, task: asyncio.Task, start_time: float) -> RunResult:
        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        if task.cancelled():
            return RunResult.failure(
                source.source_id,
                elapsed_ms,
                f"Run deadline of {self.run_deadline}s exceeded",
                ErrorKind.TIMEOUT
            )

        error = task.exception()
        if error is not None:
            logger.error(f"Source {source.source_id} raised: {error}")
            return RunResult.failure(
                source.source_id,
                elapsed_ms,
                str(error) or error.__class__.__name__,
                ErrorKind.ADAPTER_ERROR
            )

        return task.result()

    async def _run_source(self, source: ChartSource, fetcher: ChartFetcher) -> RunResult:
        """Crawl one source with the per-source timeout and retry policy applied."""
        attempt = 0
        start_time = time.monotonic()

        while True:
            try:
                result = await asyncio.wait_for(source.crawl(fetcher), timeout=self.per_source_timeout)
            except asyncio.TimeoutError:
                logger.error(f"Source {source.source_id} timed out after {self.per_source_timeout}s")
                result = RunResult.failure(
                    source.source_id,
                    int((time.monotonic() - start_time) * 1000),
                    f"Timed out after {self.per_source_timeout}s",
                    ErrorKind.TIMEOUT
                )

            if result.is_success or attempt >= self.max_retries:
                return result
            if not ErrorRecovery.is_retryable_kind(result.error_kind):
                return result

            delay = ErrorRecovery.get_retry_delay(attempt, self.retry_backoff)
            attempt += 1
            logger.info(f"Retrying {source.source_id} in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries + 1})")
            await asyncio.sleep(delay)
