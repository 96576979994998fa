"""Secure structured logging for the durable work queue.

Work items frequently carry credentials on their way to a directory or
notification backend, so formatted records are scrubbed before output.

Features:
    - Sensitive data masking (passwords, tokens, API keys)
    - JSON structured logging format
    - Work-item context integration ([queue=xxx][item=yyy] prefixes)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# Patterns to mask in logs
SENSITIVE_PATTERNS = [
    (re.compile(r'api[_-]?key["\']?\s*[:=]\s*["\']?[\w-]+', re.I), "api_key=***MASKED***"),
    (re.compile(r'password["\']?\s*[:=]\s*["\']?[^\s"\',}]+', re.I), "password=***MASKED***"),
    (re.compile(r'token["\']?\s*[:=]\s*["\']?[^\s"\',}]+', re.I), "token=***MASKED***"),
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def mask_sensitive_data(message: str) -> str:
    """Apply all sensitive-data patterns to a message."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def _get_item_context() -> tuple[str | None, str | None]:
    """Return (queue_name, item_id) of the work item being processed, if any."""
    from durable_workqueue.core.tracing import get_current_context

    ctx = get_current_context()
    if ctx:
        return ctx.queue_name, ctx.item_id
    return None, None


class SecureFormatter(logging.Formatter):
    """Formatter that masks sensitive data and includes work-item context."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_item_context: bool = True,
    ) -> None:
        """Initialize the secure formatter.

        Args:
            fmt: Format string for log messages.
            datefmt: Date format string.
            include_item_context: Whether to include the [queue=xxx][item=yyy] prefix.
        """
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.include_item_context = include_item_context

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        if self.include_item_context:
            from durable_workqueue.core.tracing import format_context_prefix

            prefix = format_context_prefix()
            if prefix:
                prefix += " "
                # "2024-01-15 10:30:00 - logger - LEVEL - message" gets the
                # prefix right before the message part
                parts = message.split(" - ", 3)
                if len(parts) == 4:
                    message = f"{parts[0]} - {parts[1]} - {parts[2]} - {prefix}{parts[3]}"
                else:
                    message = prefix + message

        return mask_sensitive_data(message)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging with work-item context."""

    def __init__(self, include_item_context: bool = True) -> None:
        super().__init__()
        self.include_item_context = include_item_context

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, str | None] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": mask_sensitive_data(record.getMessage()),
        }

        if self.include_item_context:
            queue_name, item_id = _get_item_context()
            if queue_name:
                log_data["queue"] = queue_name
                log_data["item_id"] = item_id

        if record.exc_info:
            log_data["exception"] = mask_sensitive_data(self.formatException(record.exc_info))

        # Masked per field; quotes escaped by json.dumps would hide values
        # from the patterns
        return json.dumps(log_data)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    mask_sensitive: bool = True,
    include_item_context: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Use JSON format for structured logging.
        mask_sensitive: Mask sensitive data in logs.
        include_item_context: Include [queue=xxx][item=yyy] in log messages.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = JSONFormatter(include_item_context=include_item_context)
    elif mask_sensitive:
        formatter = SecureFormatter(
            fmt=LOG_FORMAT,
            datefmt=DATE_FORMAT,
            include_item_context=include_item_context,
        )
    else:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
