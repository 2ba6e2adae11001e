"""
Error handling utilities for the pool event streams.

Specialized exception classes, transport error classification and the
per-source reconnect policy.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Base exception for monitor operations."""
    pass


class SubscriptionFailure(MonitorError):
    """Raised when a pool's event stream cannot be read."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class RateLimitError(SubscriptionFailure):
    """Raised when the node rate-limits log requests."""

    def __init__(self, message: str, source: Optional[str] = None, retry_after: Optional[float] = None):
        super().__init__(message, source)
        self.retry_after = retry_after


class NetworkError(SubscriptionFailure):
    """Raised when network-related errors occur."""
    pass


class DecodeError(MonitorError):
    """Raised when a log payload does not match the expected event layout."""
    pass


class ReconnectPolicy:
    """
    Exponential backoff with a cap on consecutive attempts.

    The attempt counter resets once a stream delivers again, so only an
    unbroken run of failures can exhaust the policy.
    """

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, max_attempts: int = 10):
        """
        Initialize reconnect policy.

        Args:
            base_delay: Delay before the first retry in seconds
            max_delay: Upper bound for any single delay
            max_attempts: Consecutive failures allowed (0 = unlimited)
        """
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self.attempts = 0

    def should_retry(self) -> bool:
        """Check if another reconnect attempt is allowed."""
        return self.max_attempts == 0 or self.attempts < self.max_attempts

    def next_delay(self, multiplier: float = 1.0) -> float:
        """Record an attempt and return the delay to wait before it."""
        delay = min(self.base_delay * (2 ** self.attempts) * multiplier, self.max_delay)
        self.attempts += 1
        return delay

    def reset(self):
        self.attempts = 0


class ErrorHandler:
    """
    Centralized error handling for stream failures.

    Provides classification, logging, and recovery strategies for errors
    raised while polling a pool's logs.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category for appropriate handling.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, RateLimitError):
            return 'rate_limit'
        if isinstance(error, NetworkError):
            return 'network'
        if isinstance(error, DecodeError):
            return 'decode'

        error_str = str(error).lower()

        # Rate limiting errors
        if any(keyword in error_str for keyword in ['rate limit', 'too many requests', '429']):
            return 'rate_limit'

        # Network connectivity errors
        if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns']):
            return 'network'

        # Node refused the filter (range too large, bad params)
        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400', 'block range']):
            return 'request'

        return 'unknown'

    def should_retry(self, error: Exception) -> bool:
        """
        Determine if an error should trigger a reconnect.

        Decode errors are deterministic for a given log and are skipped
        instead of retried.
        """
        return self.classify_error(error) != 'decode'

    def delay_multiplier(self, error: Exception) -> float:
        """Scale factor applied to the backoff delay for this error type."""
        error_category = self.classify_error(error)

        # Rate limit errors get longer delays
        if error_category == 'rate_limit':
            return 2.0
        if error_category == 'network':
            return 1.0
        # Unknown errors get conservative delay
        return 1.5

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category == 'decode':
            self.logger.warning(f"Skipping undecodable log: {error}", extra=log_data)
        elif error_category == 'rate_limit':
            self.logger.info(f"Rate limit encountered: {error}", extra=log_data)
        else:
            self.logger.warning(f"Stream error: {error}", extra=log_data)
