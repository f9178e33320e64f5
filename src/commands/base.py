#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List
from argparse import Namespace

from core.container import get_container
from core.exceptions import ChartCrawlerError, ConfigurationError, StoreError

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Services come from the dependency injection container so tests can
    register fakes in their place.
    """

    SUBCOMMANDS: List[str] = []

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def store(self):
        """Get chart store from container."""
        return self._container.get('store')

    @property
    def pipeline(self):
        """Get crawl pipeline from container."""
        return self._container.get('pipeline')

    @property
    def status_service(self):
        """Get status service from container."""
        return self._container.get('status_service')

    @property
    def notifier(self):
        """Get alert notifier from container."""
        return self._container.get('notifier')

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """Get list of available subcommands for this command."""
        return list(self.SUBCOMMANDS)

    def unknown_subcommand(self, subcommand: str) -> int:
        available = ", ".join(self.get_available_subcommands())
        self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
        return 1

    def print_json(self, payload: Any) -> None:
        print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, ConfigurationError):
            self.logger.error(error_msg)
            return 78
        elif isinstance(error, StoreError):
            self.logger.error(error_msg)
            return 69
        elif isinstance(error, ChartCrawlerError):
            self.logger.error(error_msg)
            return 1
        elif isinstance(error, ValueError):
            self.logger.error(error_msg, exc_info=True)
            return 22
        else:
            self.logger.error(error_msg, exc_info=True)
            return 1
