#!/usr/bin/env python3
"""
Core data models for chart collection.

Contains all data structures used throughout the application.
"""

from .chart import ChartEntry
from .run import RunStatus, RunResult, LogRecord, RunSummary
from .snapshot import ChartSnapshot, SNAPSHOT_KEY
from .health import AlertKind, Severity, ScheduleStatus, UsageQuota, HealthMetrics, Alert

__all__ = [
    'ChartEntry', 'RunStatus', 'RunResult', 'LogRecord', 'RunSummary',
    'ChartSnapshot', 'SNAPSHOT_KEY',
    'AlertKind', 'Severity', 'ScheduleStatus', 'UsageQuota', 'HealthMetrics', 'Alert'
]
