#!/usr/bin/env python3
"""
Health and alerting data models.

HealthMetrics and Alert are derived on every evaluation and never stored
by the crawler itself.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from dateutil import parser as date_parser


class AlertKind(str, Enum):
    """Alert categories raised by the health evaluator."""
    SYSTEM_DOWN = "system-down"
    HIGH_ERROR_RATE = "high-error-rate"
    LOW_SUCCESS_RATE = "low-success-rate"
    CRAWLER_STUCK = "crawler-stuck"
    PLATFORM_DOWN = "platform-down"
    USAGE_CRITICAL = "usage-critical"
    USAGE_WARNING = "usage-warning"
    CRAWLER_SUCCESS = "crawler-success"
    CRAWLER_FAILED = "crawler-failed"


class Severity(str, Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def parse_datetime_safe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


@dataclass
class ScheduleStatus:
    """Schedule-status record kept by the external scheduler (`cron_jobs`)."""
    enabled: bool
    run_count: int = 0
    success_count: int = 0
    failure_count: Optional[int] = None
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    job_name: Optional[str] = None

    @property
    def failures(self) -> int:
        """Failure counter, derived from run/success counts when not recorded."""
        if self.failure_count is not None:
            return self.failure_count
        return max(self.run_count - self.success_count, 0)

    @property
    def failure_rate(self) -> Optional[float]:
        if self.run_count <= 0:
            return None
        return self.failures / self.run_count

    @property
    def success_rate(self) -> Optional[float]:
        if self.run_count <= 0:
            return None
        return self.success_count / self.run_count

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ScheduleStatus':
        """Create from a `cron_jobs` row."""
        failure_count = row.get('failure_count')
        return cls(
            enabled=bool(row.get('enabled')),
            run_count=int(row.get('run_count') or 0),
            success_count=int(row.get('success_count') or 0),
            failure_count=int(failure_count) if failure_count is not None else None,
            last_run=parse_datetime_safe(row.get('last_run')),
            next_run=parse_datetime_safe(row.get('next_run')),
            job_name=row.get('job_name')
        )


@dataclass
class UsageQuota:
    """Resource usage against a limit (edge function calls, API requests...)."""
    name: str
    used: float
    limit: float

    @property
    def ratio(self) -> Optional[float]:
        if self.limit <= 0:
            return None
        return self.used / self.limit


@dataclass
class HealthMetrics:
    """Rolling health view computed from recent logs and schedule counters."""
    available: bool
    message: str
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    recent_error_count: int = 0
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0

    @property
    def success_rate_percent(self) -> int:
        if self.run_count <= 0:
            return 0
        return round(self.success_count / self.run_count * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'available': self.available,
            'message': self.message,
            'lastRun': self.last_run_at.isoformat() if self.last_run_at else None,
            'nextRun': self.next_run_at.isoformat() if self.next_run_at else None,
            'recentErrors': self.recent_error_count,
            'runCount': self.run_count,
            'successCount': self.success_count,
            'failureCount': self.failure_count
        }


@dataclass
class Alert:
    """Structured, severity-tagged health signal."""
    kind: AlertKind
    severity: Severity
    title: str
    message: str
    timestamp: datetime
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Event payload handed to the notification collaborator."""
        return {
            'kind': self.kind.value,
            'severity': self.severity.value,
            'title': self.title,
            'message': self.message,
            'context': dict(self.context),
            'timestamp': self.timestamp.isoformat()
        }

    def __repr__(self):
        return f"Alert(kind='{self.kind.value}', severity='{self.severity.value}', title='{self.title}')"
