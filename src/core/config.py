#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, List

from core.env_loader import load_env_file
from core.exceptions import ConfigurationError
from core.fetcher import DEFAULT_USER_AGENT
from core.health import AlertThresholds

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = ['melon', 'genie', 'bugs', 'vibe', 'flo']


@dataclass
class DatabaseConfig:
    """Supabase store configuration."""
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    job_name: str = 'chart_crawler_hourly'

    @property
    def api_key(self) -> Optional[str]:
        # Service key first (full permissions), anon key as fallback
        return self.supabase_service_key or self.supabase_anon_key


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    knock_secret_api_key: Optional[str] = None
    knock_alert_recipient: Optional[str] = None


@dataclass
class CrawlerConfig:
    """Fetch, orchestration and source settings."""
    request_timeout: float = 15.0
    source_timeout: float = 60.0
    run_deadline: float = 120.0
    max_retries: int = 0
    retry_backoff: float = 1.0
    max_body_bytes: int = 5 * 1024 * 1024
    user_agent: str = DEFAULT_USER_AGENT
    timezone: str = 'Asia/Seoul'
    enabled_sources: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    focus_artist: Optional[str] = 'DAY6'
    health_log_window: int = 20
    status_log_limit: int = 10


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    database: DatabaseConfig
    integrations: IntegrationConfig
    crawler: CrawlerConfig
    alerts: AlertThresholds
    app: ApplicationConfig

    def has_store(self) -> bool:
        """Check if the Supabase store is configured."""
        return bool(self.database.supabase_url and self.database.api_key)

    def has_knock(self) -> bool:
        """Check if Knock alert delivery is configured."""
        return bool(self.integrations.knock_secret_api_key and self.integrations.knock_alert_recipient)


def _env_number(key: str, default, cast=int):
    raw = os.getenv(key)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigurationError(key, f"expected a number, got '{raw}'")


def _env_list(key: str, default: List[str]) -> List[str]:
    raw = os.getenv(key)
    if not raw:
        return list(default)
    return [item.strip().lower() for item in raw.split(',') if item.strip()]


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""

        database_config = DatabaseConfig(
            supabase_url=os.getenv('SUPABASE_URL'),
            supabase_anon_key=os.getenv('SUPABASE_ANON_KEY'),
            supabase_service_key=os.getenv('SUPABASE_SERVICE_KEY'),
            job_name=os.getenv('CRAWLER_JOB_NAME', 'chart_crawler_hourly')
        )

        integration_config = IntegrationConfig(
            knock_secret_api_key=os.getenv('KNOCK_SECRET_API_KEY'),
            knock_alert_recipient=os.getenv('KNOCK_ALERT_RECIPIENT')
        )

        crawler_config = CrawlerConfig(
            request_timeout=_env_number('REQUEST_TIMEOUT', 15.0, float),
            source_timeout=_env_number('SOURCE_TIMEOUT', 60.0, float),
            run_deadline=_env_number('RUN_DEADLINE', 120.0, float),
            max_retries=_env_number('MAX_RETRIES', 0),
            retry_backoff=_env_number('RETRY_BACKOFF', 1.0, float),
            max_body_bytes=_env_number('MAX_BODY_BYTES', 5 * 1024 * 1024),
            user_agent=os.getenv('CRAWLER_USER_AGENT', DEFAULT_USER_AGENT),
            timezone=os.getenv('CHART_TIMEZONE', 'Asia/Seoul'),
            enabled_sources=_env_list('ENABLED_SOURCES', DEFAULT_SOURCES),
            focus_artist=os.getenv('FOCUS_ARTIST', 'DAY6') or None,
            health_log_window=_env_number('HEALTH_LOG_WINDOW', 20),
            status_log_limit=_env_number('STATUS_LOG_LIMIT', 10)
        )

        alert_thresholds = AlertThresholds(
            error_rate_warning=_env_number('ALERT_ERROR_RATE_WARNING', 0.2, float),
            error_rate_critical=_env_number('ALERT_ERROR_RATE_CRITICAL', 0.5, float),
            success_rate_low=_env_number('ALERT_SUCCESS_RATE_LOW', 0.8, float),
            consecutive_failures=_env_number('ALERT_CONSECUTIVE_FAILURES', 3),
            platform_failure_share=_env_number('ALERT_PLATFORM_FAILURE_SHARE', 0.5, float),
            usage_warning=_env_number('ALERT_USAGE_WARNING', 0.8, float),
            usage_critical=_env_number('ALERT_USAGE_CRITICAL', 0.95, float),
            error_window_hours=_env_number('ALERT_ERROR_WINDOW_HOURS', 24)
        )

        app_config = ApplicationConfig(
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            database=database_config,
            integrations=integration_config,
            crawler=crawler_config,
            alerts=alert_thresholds,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if config.database.supabase_url and not config.database.supabase_url.startswith('https://'):
            errors.append("SUPABASE_URL must start with https://")

        crawler = config.crawler
        if crawler.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")
        if crawler.source_timeout <= 0:
            errors.append("SOURCE_TIMEOUT must be positive")
        if crawler.run_deadline <= 0:
            errors.append("RUN_DEADLINE must be positive")
        if crawler.max_retries < 0:
            errors.append("MAX_RETRIES must not be negative")
        if crawler.max_body_bytes < 1:
            errors.append("MAX_BODY_BYTES must be at least 1")
        if not crawler.enabled_sources:
            errors.append("ENABLED_SOURCES must name at least one source")
        if crawler.health_log_window < 1 or crawler.status_log_limit < 1:
            errors.append("HEALTH_LOG_WINDOW and STATUS_LOG_LIMIT must be at least 1")

        alerts = config.alerts
        for name in ('error_rate_warning', 'error_rate_critical', 'success_rate_low',
                     'platform_failure_share', 'usage_warning', 'usage_critical'):
            value = getattr(alerts, name)
            if value < 0 or value > 1:
                errors.append(f"ALERT_{name.upper()} must be between 0 and 1")
        if alerts.error_rate_warning > alerts.error_rate_critical:
            errors.append("ALERT_ERROR_RATE_WARNING must not exceed ALERT_ERROR_RATE_CRITICAL")
        if alerts.usage_warning > alerts.usage_critical:
            errors.append("ALERT_USAGE_WARNING must not exceed ALERT_USAGE_CRITICAL")
        if alerts.consecutive_failures < 1:
            errors.append("ALERT_CONSECUTIVE_FAILURES must be at least 1")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ConfigurationError('environment', '; '.join(errors))

        logger.debug("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
