#!/usr/bin/env python3
"""
Storage interface consumed by the crawler core.

The core needs an append-only log sink, a keyed snapshot store, and read
access to recent logs and to the external scheduler's status row.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

from core.models.health import ScheduleStatus
from core.models.run import LogRecord
from core.models.snapshot import ChartSnapshot, SNAPSHOT_KEY


class ChartStore(ABC):
    """Abstract storage backend."""

    @abstractmethod
    def append_log(self, record: LogRecord) -> None:
        """
        Append one execution log row.

        Raises:
            StoreOperationError: If the row could not be written
        """
        pass

    @abstractmethod
    def upsert_snapshot(self, snapshot: ChartSnapshot, key: str = SNAPSHOT_KEY) -> None:
        """
        Replace the record stored under key with this snapshot.

        Raises:
            StoreOperationError: If the record could not be written
        """
        pass

    @abstractmethod
    def get_recent_logs(self, limit: int = 20) -> List[LogRecord]:
        """Most recent log rows, newest first."""
        pass

    @abstractmethod
    def get_schedule_status(self, job_name: str) -> Optional[ScheduleStatus]:
        """Scheduler status for job_name, or None when the job is unknown."""
        pass

    def get_snapshot(self, key: str = SNAPSHOT_KEY) -> Optional[Dict[str, Any]]:
        """Stored snapshot payload, or None."""
        return None

    def get_next_run(self) -> Optional[str]:
        """Next scheduled run as reported by the scheduler, or None."""
        return None

    def trigger_remote_run(self) -> Dict[str, Any]:
        """Ask the external scheduler to run the crawler now."""
        return {'success': False, 'message': 'Remote trigger not supported by this store'}

    def health_check(self) -> Dict[str, Any]:
        """Connectivity check."""
        return {'connected': True}
