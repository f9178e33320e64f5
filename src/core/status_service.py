#!/usr/bin/env python3
"""
Crawler status and alerting service.

Reads recent logs and the scheduler status from the store, builds the
status report, and hands alerts to the notifier.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Sequence, Tuple

from core.exceptions import StoreError
from core.health import HealthEvaluator, platform_stats
from core.models.health import Alert, HealthMetrics, ScheduleStatus, UsageQuota, parse_datetime_safe
from core.models.run import LogRecord
from core.store import ChartStore

logger = logging.getLogger(__name__)


class StatusService:
    """Status query and alert evaluation over the store."""

    def __init__(self,
                 store: ChartStore,
                 evaluator: HealthEvaluator,
                 notifier=None,
                 job_name: str = 'chart_crawler_hourly',
                 health_log_window: int = 20,
                 status_log_limit: int = 10):
        """
        Initialize status service.

        Args:
            store: Chart store to read from
            evaluator: Health rule evaluator
            notifier: Alert delivery collaborator with send_alert(alert) -> bool
            job_name: Scheduler job whose status row is read
            health_log_window: Log rows inspected by health rules
            status_log_limit: Log rows included in the status report
        """
        self.store = store
        self.evaluator = evaluator
        self.notifier = notifier
        self.job_name = job_name
        self.health_log_window = health_log_window
        self.status_log_limit = status_log_limit

    def _load(self, log_limit: int):
        logs = self.store.get_recent_logs(log_limit)
        schedule = self.store.get_schedule_status(self.job_name)
        return logs, schedule

    def get_health(self, now: Optional[datetime] = None) -> HealthMetrics:
        """Compute health metrics; store failures give an unavailable result."""
        try:
            logs, schedule = self._load(self.health_log_window)
            next_run = parse_datetime_safe(self.store.get_next_run())
        except StoreError as e:
            logger.error(f"Error checking crawler health: {e.message}")
            return HealthMetrics(available=False, message='Error checking crawler health')

        return self.evaluator.compute_metrics(logs, schedule, next_run, now)

    def get_status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Build the status report.

        Returns:
            Dict with system, performance, platforms and recentLogs sections,
            or success False with an error message when the store is unreachable
        """
        now = now or datetime.now(timezone.utc)
        try:
            recent_logs, schedule = self._load(self.status_log_limit)
        except StoreError as e:
            logger.error(f"Crawler status error: {e.message}")
            return {
                'success': False,
                'error': 'Failed to fetch crawler status',
                'message': e.message,
                'timestamp': now.isoformat()
            }

        health = self.get_health(now)
        return {
            'success': True,
            'timestamp': now.isoformat(),
            'system': self._system_section(health),
            'performance': self._performance_section(schedule),
            'platforms': self._platform_section(recent_logs),
            'recentLogs': [self._log_entry(log) for log in recent_logs]
        }

    def evaluate_alerts(self,
                        usage: Optional[Sequence[UsageQuota]] = None,
                        now: Optional[datetime] = None) -> List[Alert]:
        """Run the health rules over the current store state; an unreadable store raises system-down."""
        try:
            logs, schedule = self._load(self.health_log_window)
        except StoreError as e:
            logger.error(f"Error evaluating crawler alerts: {e.message}")
            return self.evaluator.evaluate_unavailable(e.message, usage, now)
        return self.evaluator.evaluate(logs, schedule, usage, now)

    def check_and_alert(self,
                        usage: Optional[Sequence[UsageQuota]] = None,
                        notify: bool = True,
                        now: Optional[datetime] = None) -> Tuple[List[Alert], int]:
        """
        Evaluate alerts and optionally deliver them.

        Delivery failures are logged and not counted; they never raise.

        Returns:
            Triggered alerts and the number delivered
        """
        alerts = self.evaluate_alerts(usage, now)
        delivered = 0

        if notify and alerts:
            if self.notifier is None:
                logger.warning(f"{len(alerts)} alert(s) raised but no notifier is configured")
            else:
                for alert in alerts:
                    try:
                        if self.notifier.send_alert(alert):
                            delivered += 1
                    except Exception as e:  # noqa: BLE001
                        logger.error(f"Failed to deliver {alert.kind.value} alert: {e}")

        return alerts, delivered

    @staticmethod
    def _system_section(health: HealthMetrics) -> Dict[str, Any]:
        return {
            'status': 'active' if health.available else 'inactive',
            'health': 'healthy' if health.available else 'unhealthy',
            'message': health.message,
            'lastRun': health.last_run_at.isoformat() if health.last_run_at else None,
            'nextRun': health.next_run_at.isoformat() if health.next_run_at else None,
            'recentErrors': health.recent_error_count
        }

    @staticmethod
    def _performance_section(schedule: Optional[ScheduleStatus]) -> Dict[str, Any]:
        if schedule is None:
            return {'totalRuns': 0, 'successCount': 0, 'failureCount': 0, 'successRate': 0}

        success_rate = schedule.success_rate
        return {
            'totalRuns': schedule.run_count,
            'successCount': schedule.success_count,
            'failureCount': schedule.failures,
            'successRate': round(success_rate * 100) if success_rate is not None else 0
        }

    @staticmethod
    def _platform_section(logs: Sequence[LogRecord]) -> List[Dict[str, Any]]:
        platforms = []
        for name, counts in platform_stats(logs).items():
            platforms.append({
                'name': name,
                'total': counts['total'],
                'success': counts['success'],
                'failed': counts['failed'],
                'successRate': round(counts['success'] / counts['total'] * 100)
            })
        return platforms

    @staticmethod
    def _log_entry(log: LogRecord) -> Dict[str, Any]:
        return {
            'platform': log.source_id,
            'status': log.status,
            'songsFound': log.entry_count,
            'executionTime': log.duration_ms,
            'error': log.error_message,
            'errorKind': log.error_kind,
            'timestamp': log.created_at.isoformat() if log.created_at else None
        }
