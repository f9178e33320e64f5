#!/usr/bin/env python3
"""
Health command for crawler status, alerting and diagnostics.
"""

import logging
from argparse import Namespace
from typing import List, Optional

from .base import BaseCommand
from core.formatters import format_alert, format_status
from core.models.health import UsageQuota

logger = logging.getLogger(__name__)


def parse_usage(values: Optional[List[str]]) -> List[UsageQuota]:
    """
    Parse `name=used/limit` quota arguments.

    Raises:
        ValueError: If an argument is malformed
    """
    quotas = []
    for value in values or []:
        try:
            name, amounts = value.split('=', 1)
            used, limit = amounts.split('/', 1)
            quotas.append(UsageQuota(name=name.strip(), used=float(used), limit=float(limit)))
        except ValueError:
            raise ValueError(f"Invalid usage '{value}', expected name=used/limit")
    return quotas


class HealthCommand(BaseCommand):
    """Handle crawler health monitoring and diagnostics."""

    SUBCOMMANDS = ['status', 'alerts', 'check']

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute health subcommand."""
        try:
            if subcommand == "status":
                return self.status(args)
            elif subcommand == "alerts":
                return self.alerts(args)
            elif subcommand == "check":
                return self.check(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"health {subcommand}")

    def status(self, args: Namespace) -> int:
        """Show crawler status report."""
        report = self.status_service.get_status()

        if getattr(args, 'json', False):
            self.print_json(report)
        else:
            print(format_status(report))

        return 0 if report.get('success') else 1

    def alerts(self, args: Namespace) -> int:
        """Evaluate alert rules, optionally delivering them."""
        usage = parse_usage(getattr(args, 'usage', None))
        notify = getattr(args, 'notify', False)
        alerts, delivered = self.status_service.check_and_alert(usage=usage, notify=notify)

        if getattr(args, 'json', False):
            self.print_json({'alerts': [alert.to_dict() for alert in alerts], 'delivered': delivered})
            return 0

        if not alerts:
            print("✅ No alerts")
            return 0

        print(f"🚨 {len(alerts)} alert(s):")
        for alert in alerts:
            print(f"  {format_alert(alert)}")
        if notify:
            print(f"📣 Delivered {delivered}/{len(alerts)}")
        return 0

    def check(self, args: Namespace) -> int:
        """Run configuration and connectivity checks."""
        print("🏥 Chart Crawler Health Check")
        print("=" * 50)

        overall_healthy = True
        config = self.config

        print("\n⚙️  Configuration:")
        print(f"  🎧 Enabled sources: {', '.join(config.crawler.enabled_sources)}")
        print(f"  ⏱️  Timeouts: request {config.crawler.request_timeout}s, "
              f"source {config.crawler.source_timeout}s, run {config.crawler.run_deadline}s")

        print("\n📊 Store Status:")
        if not config.has_store():
            print("  ❌ Supabase not configured (SUPABASE_URL / SUPABASE_SERVICE_KEY)")
            overall_healthy = False
        else:
            health = self.store.health_check()
            if health.get('connected'):
                print("  ✅ Supabase connection: OK")
            else:
                print("  ❌ Supabase connection: FAILED")
                print(f"     Error: {health.get('error', 'Unknown error')}")
                overall_healthy = False

        print("\n🔌 Integration Status:")
        if config.has_knock():
            print("  ✅ Knock configuration: OK")
        else:
            print("  ⚠️  Knock not configured, alerts will not be delivered")

        print("\n" + "=" * 50)
        if overall_healthy:
            print("✅ Overall system health: HEALTHY")
            return 0

        print("❌ Overall system health: UNHEALTHY")
        return 1
