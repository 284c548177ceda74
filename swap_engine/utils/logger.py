"""
Logging Utilities

Provides structured logging with:
- JSON formatting for production
- Per-order context (job id, venue, phase, attempt)
- Optional file output
"""

import logging
import json
import sys
from datetime import datetime
from typing import Optional
from pathlib import Path


# Extra record attributes copied into JSON output when present
CONTEXT_FIELDS = ('job_id', 'pair', 'venue', 'phase', 'attempt', 'order_event')


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class OrderLogger:
    """Logger for order lifecycle events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def order_event(self, job_id: str, event: str, pair: str, level: int = logging.INFO, **context):
        """Log an order lifecycle event with structured context."""
        extra = {
            'job_id': job_id,
            'order_event': event,
            'pair': pair,
            **context
        }
        details = " ".join(f"{key}={value}" for key, value in context.items())
        message = f"[{job_id}] {event} ({pair})"
        if details:
            message = f"{message} {details}"
        self.logger.log(level, message, extra=extra)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON formatting

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, str(log_level).upper()))

    # Clear existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_order_logger(name: str) -> OrderLogger:
    """Get an order lifecycle logger instance."""
    return OrderLogger(name)
