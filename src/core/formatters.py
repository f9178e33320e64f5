#!/usr/bin/env python3
"""
Formatting utilities for run summaries, status reports and alerts.
"""

from typing import List, Dict, Any

from core.models.health import Alert
from core.models.run import RunSummary

SEVERITY_ICONS = {
    'info': 'ℹ️',
    'warning': '⚠️',
    'error': '🚨',
    'critical': '🔴',
}


def format_run_summary(summary: RunSummary) -> str:
    """Format a run summary for display."""
    if not summary.success:
        return f"❌ {summary.message}: {summary.error_message}"

    lines = [
        f"🎵 Chart crawl at {summary.timestamp} ({summary.execution_time_ms}ms)",
        f"   {summary.platforms_successful}/{summary.platforms_total} platforms successful, "
        f"{summary.total_songs} songs total",
    ]

    for result in summary.results:
        if result.is_success:
            lines.append(f"   ✅ {result.source_id:<6} {len(result.entries):>4} songs  {result.duration_ms}ms")
        else:
            lines.append(f"   ❌ {result.source_id:<6} [{result.error_kind}] {result.error_message}")

    return "\n".join(lines)


def format_snapshot_keys(data: Dict[str, Any]) -> List[str]:
    """One line per chart key of a snapshot payload."""
    lines = []
    for key, value in data.items():
        if isinstance(value, list):
            top = value[0] if value else None
            head = f" - #1 {top['title']} / {top['artist']}" if top else ""
            lines.append(f"   {key}: {len(value)} songs{head}")
    return lines


def format_alert(alert: Alert) -> str:
    """Format a single alert for display."""
    icon = SEVERITY_ICONS.get(alert.severity.value, '•')
    return f"{icon} [{alert.severity.value.upper()}] {alert.kind.value}: {alert.title} - {alert.message}"


def format_status(report: Dict[str, Any]) -> str:
    """Format the status report for display."""
    if not report.get('success'):
        return f"❌ {report.get('error')}: {report.get('message')}"

    system = report['system']
    performance = report['performance']
    status_icon = '🟢' if system['status'] == 'active' else '🔴'

    lines = [
        f"{status_icon} Crawler {system['status']} ({system['health']}) - {system['message']}",
        f"   Last run: {system['lastRun'] or 'never'}",
        f"   Next run: {system['nextRun'] or 'unknown'}",
        f"   Errors (24h): {system['recentErrors']}",
        f"📊 Runs: {performance['totalRuns']} total, {performance['successCount']} ok, "
        f"{performance['failureCount']} failed ({performance['successRate']}% success)",
    ]

    if report['platforms']:
        lines.append("🎧 Platforms:")
        for platform in report['platforms']:
            lines.append(
                f"   {platform['name']:<6} {platform['success']}/{platform['total']} "
                f"({platform['successRate']}%)"
            )

    return "\n".join(lines)
