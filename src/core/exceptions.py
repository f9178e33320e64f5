#!/usr/bin/env python3
"""
Standardized exception hierarchy for the chart crawler.

Provides specific exception types for different error conditions with
proper error context. Source errors carry the error kind that ends up
in the run result and the execution log.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Machine-readable failure categories recorded per source."""
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    TOO_LARGE = "too_large"
    PARSE_ROW_ERROR = "parse_row_error"
    ADAPTER_ERROR = "adapter_error"
    TIMEOUT = "timeout"
    STORE_ERROR = "store_error"
    NOT_IMPLEMENTED = "not_implemented"


class ChartCrawlerError(Exception):
    """Base exception for all chart crawler errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Source-related exceptions
class SourceError(ChartCrawlerError):
    """Base exception for chart source errors."""

    error_kind = ErrorKind.ADAPTER_ERROR


class SourceFetchError(SourceError):
    """A chart page could not be fetched."""

    def __init__(self, source_id: str, url: str, failure):
        message = f"Failed to fetch {source_id} chart at {url}: {failure.describe()}"
        context = {
            'source_id': source_id,
            'url': url,
            'reason': failure.reason.value,
            'status': failure.status,
            'detail': failure.detail
        }
        super().__init__(message, context=context)
        self.failure = failure
        self.error_kind = failure.reason


class SourceNotImplementedError(SourceError):
    """Source is reachable but has no chart extraction yet."""

    error_kind = ErrorKind.NOT_IMPLEMENTED

    def __init__(self, source_id: str, url: str):
        message = f"Chart extraction for {source_id} is not implemented ({url} is reachable)"
        context = {
            'source_id': source_id,
            'url': url
        }
        super().__init__(message, context=context)


# Store-related exceptions
class StoreError(ChartCrawlerError):
    """Base exception for external store errors."""

    error_kind = ErrorKind.STORE_ERROR


class StoreOperationError(StoreError):
    """Store operation failed."""

    def __init__(self, operation: str, table: str, original_error: Exception):
        message = f"Store {operation} failed on table {table}"
        context = {
            'operation': operation,
            'table': table,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Configuration-related exceptions
class ConfigurationError(ChartCrawlerError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


# Recovery utilities
class ErrorRecovery:
    """Utilities for error recovery and retry logic."""

    RETRYABLE_KINDS = (ErrorKind.TRANSPORT, ErrorKind.TIMEOUT)

    @staticmethod
    def is_retryable_kind(kind: Optional[str]) -> bool:
        """Check if a failed run result is worth another attempt."""
        return kind in ErrorRecovery.RETRYABLE_KINDS

    @staticmethod
    def get_retry_delay(attempt: int, base_seconds: float = 1.0) -> float:
        """Get recommended retry delay in seconds."""
        # Exponential backoff, max 30s so retries stay inside the run deadline
        return min(base_seconds * (2 ** attempt), 30.0)
