#!/usr/bin/env python3
"""
Crawler health evaluation.

Each evaluation is a fresh computation over a window of recent log records
plus the scheduler's cumulative counters. Rules fire independently, so one
evaluation can raise several alerts; repeated evaluations raise the same
alerts again.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Optional, Sequence

from core.models.health import Alert, AlertKind, HealthMetrics, ScheduleStatus, Severity, UsageQuota
from core.models.run import LogRecord

logger = logging.getLogger(__name__)


@dataclass
class AlertThresholds:
    """Tunable thresholds of the alert rule table."""
    error_rate_warning: float = 0.2
    error_rate_critical: float = 0.5
    success_rate_low: float = 0.8
    consecutive_failures: int = 3
    platform_failure_share: float = 0.5
    usage_warning: float = 0.8
    usage_critical: float = 0.95
    error_window_hours: int = 24


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def platform_stats(logs: Sequence[LogRecord]) -> Dict[str, Dict[str, int]]:
    """Per-source success/failure counts, in first-seen order."""
    stats: Dict[str, Dict[str, int]] = OrderedDict()
    for log in logs:
        counts = stats.setdefault(log.source_id, {'success': 0, 'failed': 0, 'total': 0})
        counts['total'] += 1
        if log.failed:
            counts['failed'] += 1
        else:
            counts['success'] += 1
    return stats


class HealthEvaluator:
    """Applies the alert rule table to recent logs and schedule counters."""

    def __init__(self, thresholds: Optional[AlertThresholds] = None):
        self.thresholds = thresholds or AlertThresholds()

    def evaluate(self,
                 logs: Sequence[LogRecord],
                 schedule: Optional[ScheduleStatus],
                 usage: Optional[Sequence[UsageQuota]] = None,
                 now: Optional[datetime] = None) -> List[Alert]:
        """
        Evaluate every rule once.

        Args:
            logs: Recent log records, newest first
            schedule: Scheduler status (None when the job is missing)
            usage: Resource quotas to check
            now: Evaluation instant

        Returns:
            Triggered alerts, in rule-table order
        """
        now = now or datetime.now(timezone.utc)
        alerts: List[Alert] = []

        alerts.extend(self._check_schedule(schedule, now))
        alerts.extend(self._check_rates(schedule, now))
        alerts.extend(self._check_consecutive_failures(logs, now))
        alerts.extend(self._check_platforms(logs, now))
        alerts.extend(self._check_usage(usage or [], now))

        if alerts:
            logger.info(f"Health evaluation raised {len(alerts)} alert(s): "
                        f"{', '.join(alert.kind.value for alert in alerts)}")
        else:
            logger.debug("Health evaluation raised no alerts")
        return alerts

    def evaluate_unavailable(self,
                             error_message: str,
                             usage: Optional[Sequence[UsageQuota]] = None,
                             now: Optional[datetime] = None) -> List[Alert]:
        """Alerts for an evaluation whose logs and schedule could not be read."""
        now = now or datetime.now(timezone.utc)
        alerts = [Alert(
            kind=AlertKind.SYSTEM_DOWN,
            severity=Severity.CRITICAL,
            title='Crawler status unavailable',
            message=f'Crawler logs could not be read: {error_message}',
            timestamp=now,
            context={'error': error_message}
        )]
        alerts.extend(self._check_usage(usage or [], now))
        return alerts

    def _check_schedule(self, schedule: Optional[ScheduleStatus], now: datetime) -> List[Alert]:
        if schedule is not None and schedule.enabled:
            return []

        return [Alert(
            kind=AlertKind.SYSTEM_DOWN,
            severity=Severity.CRITICAL,
            title='Crawler system inactive',
            message='The crawler schedule is disabled or missing. Immediate attention required.',
            timestamp=now,
            context={'job_name': schedule.job_name if schedule else None}
        )]

    def _check_rates(self, schedule: Optional[ScheduleStatus], now: datetime) -> List[Alert]:
        if schedule is None or schedule.run_count <= 0:
            return []

        alerts = []
        failure_rate = schedule.failure_rate
        if failure_rate >= self.thresholds.error_rate_critical:
            alerts.append(Alert(
                kind=AlertKind.HIGH_ERROR_RATE,
                severity=Severity.ERROR,
                title='High error rate detected',
                message=f"Error rate reached {round(failure_rate * 100)}% "
                        f"(threshold: {round(self.thresholds.error_rate_critical * 100)}%)",
                timestamp=now,
                context={'rate': failure_rate, 'count': schedule.failures}
            ))
        elif failure_rate >= self.thresholds.error_rate_warning:
            alerts.append(Alert(
                kind=AlertKind.HIGH_ERROR_RATE,
                severity=Severity.WARNING,
                title='Error rate warning',
                message=f"Error rate is {round(failure_rate * 100)}% "
                        f"(warning threshold: {round(self.thresholds.error_rate_warning * 100)}%)",
                timestamp=now,
                context={'rate': failure_rate, 'count': schedule.failures}
            ))

        success_rate = schedule.success_rate
        if success_rate < self.thresholds.success_rate_low:
            alerts.append(Alert(
                kind=AlertKind.LOW_SUCCESS_RATE,
                severity=Severity.WARNING,
                title='Low success rate',
                message=f"Success rate dropped to {round(success_rate * 100)}% "
                        f"(target: {round(self.thresholds.success_rate_low * 100)}%)",
                timestamp=now,
                context={'rate': success_rate, 'count': schedule.success_count}
            ))

        return alerts

    def _check_consecutive_failures(self, logs: Sequence[LogRecord], now: datetime) -> List[Alert]:
        required = self.thresholds.consecutive_failures
        latest = list(logs[:required])
        if required <= 0 or len(latest) < required or not all(log.failed for log in latest):
            return []

        return [Alert(
            kind=AlertKind.CRAWLER_STUCK,
            severity=Severity.ERROR,
            title='Consecutive failures detected',
            message=f"The crawler failed {required} times in a row.",
            timestamp=now,
            context={'count': required, 'sources': [log.source_id for log in latest]}
        )]

    def _check_platforms(self, logs: Sequence[LogRecord], now: datetime) -> List[Alert]:
        alerts = []
        for source_id, counts in platform_stats(logs).items():
            share = counts['failed'] / counts['total']
            if share > self.thresholds.platform_failure_share:
                alerts.append(Alert(
                    kind=AlertKind.PLATFORM_DOWN,
                    severity=Severity.ERROR,
                    title=f"{source_id.upper()} platform issue",
                    message=f"{source_id} failure rate is {round(share * 100)}%.",
                    timestamp=now,
                    context={'source_id': source_id, 'rate': share, 'count': counts['failed']}
                ))
        return alerts

    def _check_usage(self, usage: Sequence[UsageQuota], now: datetime) -> List[Alert]:
        alerts = []
        for quota in usage:
            ratio = quota.ratio
            if ratio is None:
                logger.warning(f"Skipping usage quota '{quota.name}' with non-positive limit")
                continue

            context = {'name': quota.name, 'rate': ratio, 'used': quota.used, 'limit': quota.limit}
            if ratio >= self.thresholds.usage_critical:
                alerts.append(Alert(
                    kind=AlertKind.USAGE_CRITICAL,
                    severity=Severity.CRITICAL,
                    title=f"{quota.name} limit imminent",
                    message=f"{quota.name} usage reached {round(ratio * 100)}%!",
                    timestamp=now,
                    context=context
                ))
            elif ratio >= self.thresholds.usage_warning:
                alerts.append(Alert(
                    kind=AlertKind.USAGE_WARNING,
                    severity=Severity.WARNING,
                    title=f"{quota.name} usage warning",
                    message=f"{quota.name} usage is {round(ratio * 100)}%.",
                    timestamp=now,
                    context=context
                ))
        return alerts

    def compute_metrics(self,
                        logs: Sequence[LogRecord],
                        schedule: Optional[ScheduleStatus],
                        next_run: Optional[datetime] = None,
                        now: Optional[datetime] = None) -> HealthMetrics:
        """
        Build the rolling health view.

        Args:
            logs: Recent log records
            schedule: Scheduler status (None when the job is missing)
            next_run: Next run reported by the scheduler, preferred over the status row
            now: Evaluation instant

        Returns:
            HealthMetrics
        """
        now = _as_utc(now or datetime.now(timezone.utc))
        window_start = now - timedelta(hours=self.thresholds.error_window_hours)
        recent_errors = sum(
            1 for log in logs
            if log.failed and log.created_at is not None and _as_utc(log.created_at) > window_start
        )

        available = schedule is not None and schedule.enabled
        if available:
            message = 'Crawler is active and scheduled'
        else:
            message = 'Crawler is not properly configured'

        return HealthMetrics(
            available=available,
            message=message,
            last_run_at=schedule.last_run if schedule else None,
            next_run_at=next_run or (schedule.next_run if schedule else None),
            recent_error_count=recent_errors,
            run_count=schedule.run_count if schedule else 0,
            success_count=schedule.success_count if schedule else 0,
            failure_count=schedule.failures if schedule else 0
        )
