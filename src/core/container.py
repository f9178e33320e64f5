#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to manage dependencies and avoid scattered
instantiation throughout the codebase. Supports singleton and factory patterns.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        """Initialize empty container."""
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        # Re-entrant: factories resolve their own dependencies through get()
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            self._factories[service_name] = singleton(factory)
            if service_name in self._singletons:
                del self._singletons[service_name]

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as factory (new instance each time).

        Args:
            service_name: Unique name for the service
            factory: Function that creates service instances
        """
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """
        Register an existing instance as singleton.

        Args:
            service_name: Unique name for the service
            instance: Pre-created service instance
        """
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Args:
            service_name: Name of the service to retrieve

        Returns:
            Service instance

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    instance = factory()
                    self._singletons[service_name] = instance
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_store():
            return SupabaseChartStore.from_credentials(url, key)
    """
    if getattr(factory_func, '_is_singleton', False):
        return factory_func

    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    def create_config():
        from core.config import get_config
        return get_config()

    def create_registry():
        from core.sources import get_registry
        return get_registry()

    def create_store():
        from core.supabase_adapter import SupabaseChartStore
        config = container.get('config')
        return SupabaseChartStore.from_credentials(config.database.supabase_url, config.database.api_key)

    def create_notifier():
        from integrations.knock_notifier import KnockNotifier
        config = container.get('config')
        return KnockNotifier(
            api_key=config.integrations.knock_secret_api_key,
            recipient=config.integrations.knock_alert_recipient
        )

    def create_fetcher_factory():
        from core.fetcher import ChartFetcher
        crawler = container.get('config').crawler

        def make_fetcher():
            return ChartFetcher(
                timeout=crawler.request_timeout,
                user_agent=crawler.user_agent,
                max_body_bytes=crawler.max_body_bytes
            )
        return make_fetcher

    def create_orchestrator():
        from core.orchestrator import RunOrchestrator
        crawler = container.get('config').crawler
        return RunOrchestrator(
            per_source_timeout=crawler.source_timeout,
            run_deadline=crawler.run_deadline,
            max_retries=crawler.max_retries,
            retry_backoff=crawler.retry_backoff
        )

    def create_aggregator():
        from core.aggregator import Aggregator
        config = container.get('config')
        return Aggregator(
            chart_type_suffixes=container.get('registry').chart_type_suffixes(),
            focus_artist=config.crawler.focus_artist
        )

    def create_run_logger():
        from core.run_logger import RunLogger
        return RunLogger(container.get('store'))

    def create_pipeline():
        from core.pipeline import ChartPipeline
        config = container.get('config')
        run_logger = container.get('run_logger') if config.has_store() else None
        if run_logger is None:
            logger.warning("Supabase store not configured, crawl results will not be persisted")
        return ChartPipeline(
            registry=container.get('registry'),
            orchestrator=container.get('orchestrator'),
            aggregator=container.get('aggregator'),
            run_logger=run_logger,
            fetcher_factory=container.get('fetcher_factory'),
            source_ids=config.crawler.enabled_sources,
            source_config={'timezone': config.crawler.timezone},
            timezone=config.crawler.timezone
        )

    def create_status_service():
        from core.health import HealthEvaluator
        from core.status_service import StatusService
        config = container.get('config')
        notifier = container.get('notifier') if config.has_knock() else None
        return StatusService(
            store=container.get('store'),
            evaluator=HealthEvaluator(config.alerts),
            notifier=notifier,
            job_name=config.database.job_name,
            health_log_window=config.crawler.health_log_window,
            status_log_limit=config.crawler.status_log_limit
        )

    container.register_singleton('config', create_config)
    container.register_singleton('registry', create_registry)
    container.register_singleton('store', create_store)
    container.register_singleton('notifier', create_notifier)
    container.register_singleton('fetcher_factory', create_fetcher_factory)
    container.register_singleton('run_logger', create_run_logger)
    container.register_singleton('pipeline', create_pipeline)
    container.register_singleton('status_service', create_status_service)

    # Non-singletons
    container.register_factory('orchestrator', create_orchestrator)
    container.register_factory('aggregator', create_aggregator)

    logger.debug("Default services registered in container")
