"""
Logging configuration and utilities for Research Archive.

This module provides centralized logging configuration with support for
different log levels, file rotation, and structured JSON output.
Nothing is configured at import time; entry points call ``setup_logging``.
"""

import sys
import json
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "taskName", "message",
}


class ColoredFormatter(logging.Formatter):
    """Formatter that adds ANSI colors to the level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record):
        original = record.levelname
        if original in self.COLORS:
            record.levelname = f"{self.COLORS[original]}{original}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    log_file: str = "research_archive.log",
    console_output: bool = True,
    file_output: bool = False,
    structured_logging: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Set up logging for the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
        log_file: Name of the log file
        console_output: Whether to output to stderr
        file_output: Whether to output to rotating files
        structured_logging: Whether to use structured JSON logging
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        if structured_logging:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(
                ColoredFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(console_handler)

    if file_output:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        if structured_logging:
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
                )
            )
        logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            log_path / f"error_{log_file}",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        logger.addHandler(error_handler)

    return logger


def log_performance_metrics(
    operation_name: str,
    metrics: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
) -> None:
    """Log performance metrics for monitoring.

    Args:
        operation_name: Name of the operation
        metrics: Dictionary of metrics to log
        logger: Logger instance to use
    """
    log = logger or logging.getLogger(__name__)
    metrics_str = ", ".join(f"{k}={v}" for k, v in metrics.items())
    log.info(f"METRICS [{operation_name}]: {metrics_str}")


def configure_third_party_loggers(level: str = "WARNING") -> None:
    """Quiet chatty third-party loggers."""
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    for logger_name in ("urllib3", "requests", "Bio"):
        logging.getLogger(logger_name).setLevel(numeric_level)
