"""
Error handling utilities and custom exceptions.

This module provides the exception taxonomy used across Research Archive,
together with opt-in retry helpers and a tracker that keeps per-source
failure counts for monitoring.

Adapter failures are recoverable: the search pipeline records them and
carries on with the remaining sources. Validation failures are surfaced
to the caller as structured rejections and are never retried.
"""

import asyncio
import time
import random
import logging
import traceback
from typing import Callable, Any, Optional, Dict, Awaitable, TypeVar
from functools import wraps
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResearchArchiveError(Exception):
    """Base exception for Research Archive errors."""

    pass


class APIError(ResearchArchiveError):
    """Exception raised for upstream API errors."""

    pass


class SourceError(APIError):
    """Generic failure of one bibliographic source adapter."""

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source


class NetworkError(APIError):
    """Exception raised for network connectivity issues and timeouts."""

    pass


class RateLimitError(APIError):
    """Exception raised when an upstream rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class DataError(ResearchArchiveError):
    """Exception raised for data validation or processing errors."""

    pass


class ValidationError(DataError):
    """Exception raised when a request does not match its schema."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {}
        if self.field:
            details["field"] = self.field
            details["value"] = self.value
        return {"error": "Validation Error", "message": str(self), "details": details}


class ConfigurationError(ResearchArchiveError):
    """Exception raised for configuration-related errors."""

    pass


class PaperNotFoundError(ResearchArchiveError):
    """Raised by boundaries that prefer an exception over an absent result."""

    def __init__(self, paper_id: str):
        super().__init__(f"Paper not found: {paper_id}")
        self.paper_id = paper_id


class ErrorSeverity(Enum):
    """Enumeration of error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorHandler:
    """Logs recoverable errors and keeps counts per context for monitoring."""

    def __init__(self):
        self.error_counts: Dict[str, int] = {}
        self.last_errors: Dict[str, datetime] = {}

    def handle_api_error(
        self,
        error: Exception,
        context: str = "",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ) -> None:
        """Log an upstream failure and track it under ``context``.

        Args:
            error: The error that occurred
            context: Where it occurred, usually the source name
            severity: Severity level of the error
        """
        self._track_error(f"{type(error).__name__}:{context}")

        logger.log(
            self._get_log_level(severity),
            f"API Error{' in ' + context if context else ''}: {error}",
        )
        if error.__cause__:
            logger.debug(f"Underlying cause: {error.__cause__!r}")

        if isinstance(error, RateLimitError) and error.retry_after:
            logger.info(f"{context or 'Upstream'} asked to retry after {error.retry_after}s")

    def _track_error(self, error_key: str) -> None:
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1
        self.last_errors[error_key] = datetime.now()

    def _get_log_level(self, severity: ErrorSeverity) -> int:
        severity_map = {
            ErrorSeverity.LOW: logging.INFO,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }
        return severity_map.get(severity, logging.WARNING)

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of tracked errors."""
        return {
            "error_counts": dict(self.error_counts),
            "last_errors": {k: v.isoformat() for k, v in self.last_errors.items()},
            "total_errors": sum(self.error_counts.values()),
        }

    def reset_error_tracking(self) -> None:
        self.error_counts.clear()
        self.last_errors.clear()

    @staticmethod
    def retry_on_failure(
        max_attempts: int = 3,
        delay: float = 1.0,
        backoff_factor: float = 2.0,
        exceptions: tuple = (APIError,),
        jitter: bool = True,
    ):
        """Decorator to retry function calls on specific exceptions.

        Args:
            max_attempts: Maximum number of attempts
            delay: Initial delay between attempts (seconds)
            backoff_factor: Factor to multiply delay by after each failure
            exceptions: Tuple of exception types to retry on
            jitter: Whether to add random jitter to delay times
        """

        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs) -> Any:
                last_exception = None
                current_delay = delay

                for attempt in range(max_attempts):
                    try:
                        return func(*args, **kwargs)
                    except exceptions as e:
                        last_exception = e

                        if attempt < max_attempts - 1:
                            logger.warning(
                                f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {e}"
                            )

                            if isinstance(e, RateLimitError) and e.retry_after:
                                sleep_time = e.retry_after
                            else:
                                sleep_time = current_delay
                                if jitter:
                                    jitter_range = sleep_time * 0.25
                                    sleep_time += random.uniform(-jitter_range, jitter_range)

                            logger.info(f"Retrying in {sleep_time:.2f} seconds...")
                            time.sleep(max(0, sleep_time))
                            current_delay *= backoff_factor
                        else:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")

                raise last_exception

            return wrapper

        return decorator

    @staticmethod
    def safe_execute(
        func: Callable,
        default_return: Any = None,
        log_errors: bool = True,
        context: str = "",
    ) -> Any:
        """Execute ``func`` and return ``default_return`` if it raises.

        Args:
            func: Zero-argument callable
            default_return: Value to return if the call fails
            log_errors: Whether to log errors
            context: Additional context for error logging
        """
        try:
            return func()
        except Exception as e:
            if log_errors:
                func_name = getattr(func, "__name__", str(func))
                logger.error(f"Error in {func_name}{' (' + context + ')' if context else ''}: {e}")
                logger.debug(f"Full traceback: {traceback.format_exc()}")
            return default_return


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple = (Exception,),
) -> T:
    """Await ``func()`` up to ``max_retries`` times with exponential backoff.

    The delay before attempt ``n`` (zero based) is ``base_delay * 2 ** (n - 1)``.
    The last error is re-raised once all attempts have failed.
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries):
        try:
            return await func()
        except exceptions as e:
            last_exception = e
            if attempt < max_retries - 1:
                wait = base_delay * (2 ** attempt)
                logger.warning(f"Attempt {attempt + 1}/{max_retries} failed: {e}; retrying in {wait:.2f}s")
                await asyncio.sleep(wait)

    raise last_exception


def retry_api_calls(max_attempts: int = 3, delay: float = 1.0, jitter: bool = True):
    """Decorator for retrying API calls with backoff."""
    return ErrorHandler.retry_on_failure(
        max_attempts=max_attempts,
        delay=delay,
        exceptions=(APIError, RateLimitError, NetworkError),
        jitter=jitter,
    )


def handle_exceptions(default_return: Any = None, log_errors: bool = True, context: str = ""):
    """Decorator for best-effort operations: log any error and return a default."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return ErrorHandler.safe_execute(
                lambda: func(*args, **kwargs),
                default_return=default_return() if callable(default_return) else default_return,
                log_errors=log_errors,
                context=context or func.__name__,
            )

        return wrapper

    return decorator


def log_execution_time(logger_instance: Optional[logging.Logger] = None):
    """Decorator to log function execution time."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            log = logger_instance or logger

            try:
                result = func(*args, **kwargs)
                log.debug(f"{func.__name__} completed in {time.time() - start_time:.2f} seconds")
                return result
            except Exception as e:
                log.warning(f"{func.__name__} failed after {time.time() - start_time:.2f} seconds: {e}")
                raise

        return wrapper

    return decorator
