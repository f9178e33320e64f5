#!/usr/bin/env python3
"""
Best-effort persistence of run side effects.

Log rows and the snapshot upsert are dispatched as background tasks. Their
failures are logged here and never reach the run summary.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Set

from core.models.run import LogRecord, RunResult
from core.models.snapshot import ChartSnapshot, SNAPSHOT_KEY
from core.store import ChartStore

logger = logging.getLogger(__name__)


class RunLogger:
    """Writes log records and the snapshot to the store without blocking the run."""

    def __init__(self, store: ChartStore, snapshot_key: str = SNAPSHOT_KEY):
        self.store = store
        self.snapshot_key = snapshot_key
        self._pending: Set[asyncio.Task] = set()
        self._last_stamp: Optional[datetime] = None

    def dispatch(self,
                 results: Sequence[RunResult],
                 snapshot: Optional[ChartSnapshot],
                 created_at: datetime) -> List[asyncio.Task]:
        """
        Schedule one log append per result and the snapshot upsert.

        Must be called from a running event loop.

        Args:
            results: Run results, one log row each
            snapshot: Aggregated snapshot, skipped when None
            created_at: Run collection instant; each log row is stamped at or after it

        Returns:
            The scheduled tasks
        """
        tasks = []
        for result in results:
            record = LogRecord.from_run_result(result, self._next_stamp(created_at))
            tasks.append(self._spawn(self._append(record), f"log-{result.source_id}"))

        if snapshot is not None:
            tasks.append(self._spawn(self._upsert(snapshot), "snapshot-upsert"))

        return tasks

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for dispatched writes to finish.

        Returns:
            True if every pending write finished within timeout
        """
        if not self._pending:
            return True

        _, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} store write(s) still pending after {timeout}s")
            return False
        return True

    def _next_stamp(self, earliest: datetime) -> datetime:
        # Stamps strictly increase within and across runs
        stamp = max(datetime.now(earliest.tzinfo), earliest)
        if self._last_stamp is not None and stamp <= self._last_stamp:
            stamp = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = stamp
        return stamp

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _append(self, record: LogRecord) -> bool:
        try:
            await asyncio.to_thread(self.store.append_log, record)
            return True
        except Exception as e:  # noqa: BLE001
            logger.error(f"Failed to log crawl result for {record.source_id}: {e}")
            return False

    async def _upsert(self, snapshot: ChartSnapshot) -> bool:
        try:
            await asyncio.to_thread(self.store.upsert_snapshot, snapshot, self.snapshot_key)
            logger.info(f"Stored snapshot '{self.snapshot_key}' with {len(snapshot.keys)} keys")
            return True
        except Exception as e:  # noqa: BLE001
            logger.error(f"Failed to store chart snapshot: {e}")
            return False
