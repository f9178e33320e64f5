#!/usr/bin/env python3
"""
Crawl command: run the chart crawler and manage sources.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.formatters import format_run_summary, format_snapshot_keys

logger = logging.getLogger(__name__)


class CrawlCommand(BaseCommand):
    """Run chart crawls, list sources, and trigger the scheduled job remotely."""

    SUBCOMMANDS = ['run', 'sources', 'snapshot', 'trigger']

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute crawl subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            elif subcommand == "sources":
                return self.sources(args)
            elif subcommand == "snapshot":
                return self.snapshot(args)
            elif subcommand == "trigger":
                return self.trigger(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"crawl {subcommand}")

    def run(self, args: Namespace) -> int:
        """Crawl now and print the run summary."""
        pipeline = self.pipeline
        source_ids = getattr(args, 'sources', None)
        persist = not getattr(args, 'dry_run', False)

        if not persist:
            print("🧪 Dry run: results will not be stored")

        summary = pipeline.run_now_sync(source_ids, persist=persist)

        if getattr(args, 'json', False):
            self.print_json(summary.to_dict())
        else:
            print(format_run_summary(summary))
            if summary.data:
                for line in format_snapshot_keys(summary.data):
                    print(line)

        if summary.success and getattr(args, 'notify', False):
            self._notify_results(summary)

        return 0 if summary.success else 1

    def _notify_results(self, summary) -> None:
        if not self.config.has_knock():
            print("⚠️  Knock not configured, skipping run notifications")
            return

        notifier = self.notifier
        sent = 0
        for result in summary.results:
            if notifier.send_run_result(result):
                sent += 1
        print(f"📣 Sent {sent}/{len(summary.results)} run notifications")

    def sources(self, args: Namespace) -> int:
        """List registered sources and whether each is enabled."""
        enabled = set(self.config.crawler.enabled_sources)
        registry = self._container.get('registry')

        print("🎧 Chart sources:")
        for name in registry.list_available_sources():
            metadata = registry.get_source(name).get_metadata()
            marker = "✅" if name in enabled else "⏸️ "
            charts = f" ({metadata.chart_types} charts)" if metadata.chart_types > 1 else ""
            print(f"  {marker} {name:<6} {metadata.display_name}{charts} - {metadata.homepage}")
        return 0

    def snapshot(self, args: Namespace) -> int:
        """Show the latest stored chart snapshot."""
        payload = self.store.get_snapshot()
        if payload is None:
            print("📭 No snapshot stored yet")
            return 1

        if getattr(args, 'json', False):
            self.print_json(payload)
            return 0

        print(f"🗂️  Snapshot collected at {payload.get('collectedAtKST')}")
        for line in format_snapshot_keys(payload):
            print(line)
        return 0

    def trigger(self, args: Namespace) -> int:
        """Ask the scheduler to run the crawler job now."""
        result = self.store.trigger_remote_run()
        if result.get('success'):
            print(f"🚀 {result.get('message')}")
            return 0

        print(f"❌ Trigger failed: {result.get('message')}")
        return 1
