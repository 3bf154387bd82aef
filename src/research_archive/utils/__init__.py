# Utilities package for helper functions

from .error_handler import (
    ErrorHandler,
    ErrorSeverity,
    ResearchArchiveError,
    APIError,
    SourceError,
    NetworkError,
    RateLimitError,
    DataError,
    ValidationError,
    ConfigurationError,
    PaperNotFoundError,
    retry_api_calls,
    retry_with_backoff,
    handle_exceptions,
    log_execution_time,
)
from .cache import CacheManager, TTLCache
from .rate_limiter import MinIntervalRateLimiter, get_arxiv_rate_limiter
from .config_manager import ConfigurationManager

__all__ = [
    "ErrorHandler",
    "ErrorSeverity",
    "ResearchArchiveError",
    "APIError",
    "SourceError",
    "NetworkError",
    "RateLimitError",
    "DataError",
    "ValidationError",
    "ConfigurationError",
    "PaperNotFoundError",
    "retry_api_calls",
    "retry_with_backoff",
    "handle_exceptions",
    "log_execution_time",
    "CacheManager",
    "TTLCache",
    "MinIntervalRateLimiter",
    "get_arxiv_rate_limiter",
    "ConfigurationManager",
]
