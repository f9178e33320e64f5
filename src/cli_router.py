#!/usr/bin/env python3
"""
CLI Router for the Chart Crawler.

Routes `<command> <subcommand>` invocations to command classes.
"""

import argparse
import logging
import sys
from typing import Optional, List

from commands import get_command, COMMANDS
from core.config import get_config_manager
from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for chart crawler commands.

    Command structure:
    - python run.py crawl run --sources melon genie
    - python run.py crawl sources
    - python run.py health status --json
    - python run.py health alerts --usage edge_functions=480000/500000 --notify
    """

    def __init__(self, container=None):
        """Initialize CLI router."""
        self.container = container
        self._command_parsers = {}
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Music chart crawler with health monitoring",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_crawl_parser(subparsers)
        self._add_health_parser(subparsers)

        return parser

    def _add_crawl_parser(self, subparsers):
        """Add crawl command parser."""
        crawl_parser = subparsers.add_parser(
            'crawl',
            help='Chart crawling operations'
        )
        self._command_parsers['crawl'] = crawl_parser

        crawl_subparsers = crawl_parser.add_subparsers(
            dest='subcommand',
            help='Crawl operations',
            metavar='{run,sources,snapshot,trigger}'
        )

        run_parser = crawl_subparsers.add_parser('run', help='Crawl all enabled sources now')
        run_parser.add_argument('--sources', nargs='+', default=None, help='Sources to crawl (default: ENABLED_SOURCES)')
        run_parser.add_argument('--dry-run', action='store_true', help='Do not store logs or the snapshot')
        run_parser.add_argument('--notify', action='store_true', help='Send per-source success/failure notifications')
        run_parser.add_argument('--json', action='store_true', help='Print the run summary as JSON')

        crawl_subparsers.add_parser('sources', help='List registered chart sources')
        snapshot_parser = crawl_subparsers.add_parser('snapshot', help='Show the latest stored chart snapshot')
        snapshot_parser.add_argument('--json', action='store_true', help='Print the snapshot as JSON')

        crawl_subparsers.add_parser('trigger', help='Ask the scheduler to run the crawler job now')

    def _add_health_parser(self, subparsers):
        """Add health command parser."""
        health_parser = subparsers.add_parser(
            'health',
            help='Crawler health monitoring and alerting'
        )
        self._command_parsers['health'] = health_parser

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{status,alerts,check}'
        )

        status_parser = health_subparsers.add_parser('status', help='Show crawler status report')
        status_parser.add_argument('--json', action='store_true', help='Print the report as JSON')

        alerts_parser = health_subparsers.add_parser('alerts', help='Evaluate alert rules')
        alerts_parser.add_argument('--usage', nargs='+', default=None, metavar='NAME=USED/LIMIT',
                                   help='Resource usage to check against usage thresholds')
        alerts_parser.add_argument('--notify', action='store_true', help='Deliver alerts through Knock')
        alerts_parser.add_argument('--json', action='store_true', help='Print alerts as JSON')

        health_subparsers.add_parser('check', help='Check configuration and store connectivity')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Scheduled run (all enabled sources, results stored)
  python run.py crawl run

  # Local testing
  python run.py crawl run --sources melon --dry-run --json

  # Monitoring
  python run.py health status
  python run.py health alerts --notify
  python run.py health check
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self._command_parsers[args.command].print_help()
            return 1

        try:
            command = get_command(args.command, self.container)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        get_config_manager().update_logging()
    except ConfigurationError as e:
        logger.error(e.message)
        return 78

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
