#!/usr/bin/env python3
"""
Run result, execution log and run summary data models.

A RunResult is produced once per source per run, a LogRecord is the
persisted audit row derived from it, and a RunSummary is what the
run-now entry point hands back to its caller.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field

from core.models.chart import ChartEntry
from core.models.health import parse_datetime_safe


class RunStatus(str, Enum):
    """Outcome of crawling one source."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    """Outcome of crawling one source in one run."""
    source_id: str
    status: RunStatus
    duration_ms: int
    entries: Tuple[ChartEntry, ...] = ()
    error_message: Optional[str] = None
    error_kind: Optional[str] = None

    def __post_init__(self):
        """Normalize enum fields and enforce the success/failure invariants."""
        object.__setattr__(self, 'status', RunStatus(self.status))
        if isinstance(self.error_kind, Enum):
            object.__setattr__(self, 'error_kind', self.error_kind.value)

        if self.duration_ms < 0:
            raise ValueError("duration_ms must be non-negative")
        if self.status == RunStatus.SUCCESS and (self.error_message or self.error_kind):
            raise ValueError("successful run results cannot carry an error")
        if self.status == RunStatus.FAILED and self.entries:
            raise ValueError("failed run results cannot carry entries")

    @classmethod
    def success(cls, source_id: str, entries: List[ChartEntry], duration_ms: int) -> 'RunResult':
        return cls(
            source_id=source_id,
            status=RunStatus.SUCCESS,
            duration_ms=duration_ms,
            entries=tuple(entries)
        )

    @classmethod
    def failure(cls, source_id: str, duration_ms: int, error_message: str, error_kind: str) -> 'RunResult':
        return cls(
            source_id=source_id,
            status=RunStatus.FAILED,
            duration_ms=duration_ms,
            error_message=error_message,
            error_kind=error_kind
        )

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Per-source breakdown used in the run summary."""
        return {
            'platform': self.source_id,
            'status': self.status.value,
            'songs_found': len(self.entries),
            'execution_time': self.duration_ms,
            'error_message': self.error_message,
            'error_type': self.error_kind
        }


@dataclass(frozen=True)
class LogRecord:
    """One append-only audit row per source per run."""
    source_id: str
    status: str
    duration_ms: int
    entry_count: int
    created_at: Optional[datetime]
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    raw_entries: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def from_run_result(cls, result: RunResult, created_at: datetime) -> 'LogRecord':
        """Build the log row for a run result; entries are attached on success only."""
        raw_entries = None
        if result.is_success:
            raw_entries = [entry.to_dict() for entry in result.entries]

        return cls(
            source_id=result.source_id,
            status=result.status.value,
            duration_ms=result.duration_ms,
            entry_count=len(result.entries),
            created_at=created_at,
            error_message=result.error_message,
            error_kind=result.error_kind,
            raw_entries=raw_entries
        )

    @property
    def failed(self) -> bool:
        return self.status == RunStatus.FAILED.value

    def to_row(self) -> Dict[str, Any]:
        """Map to the `crawler_logs` table columns."""
        return {
            'platform': self.source_id,
            'status': self.status,
            'execution_time': self.duration_ms,
            'songs_found': self.entry_count,
            'error_message': self.error_message,
            'error_type': self.error_kind,
            'created_at': self.created_at.isoformat(),
            'metadata': {'songs': self.raw_entries} if self.raw_entries is not None else None
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LogRecord':
        """Create LogRecord from a `crawler_logs` row."""
        metadata = row.get('metadata') or {}
        raw_entries = metadata.get('songs') if isinstance(metadata, dict) else None

        return cls(
            source_id=row.get('platform', ''),
            status=row.get('status', ''),
            duration_ms=int(row.get('execution_time') or 0),
            entry_count=int(row.get('songs_found') or 0),
            created_at=parse_datetime_safe(row.get('created_at')),
            error_message=row.get('error_message'),
            error_kind=row.get('error_type'),
            raw_entries=raw_entries
        )


@dataclass
class RunSummary:
    """Structured result of one run-now invocation."""
    success: bool
    message: str
    timestamp: str
    execution_time_ms: int = 0
    results: List[RunResult] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    @property
    def platforms_total(self) -> int:
        return len(self.results)

    @property
    def platforms_successful(self) -> int:
        return sum(1 for result in self.results if result.is_success)

    @property
    def total_songs(self) -> int:
        return sum(len(result.entries) for result in self.results)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the run-now response payload."""
        payload = {
            'success': self.success,
            'message': self.message,
            'timestamp': self.timestamp,
            'executionTime': self.execution_time_ms,
            'platformsSuccessful': self.platforms_successful,
            'platformsTotal': self.platforms_total,
            'totalSongs': self.total_songs,
            'results': [result.to_dict() for result in self.results]
        }
        if self.data is not None:
            payload['data'] = self.data
        if self.error_message:
            payload['errorMessage'] = self.error_message
        return payload
