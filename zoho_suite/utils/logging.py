"""Zoho suite logging config

## Setup

Logging is automatically configured when this module is imported. It uses structlog for structured logging. Logs are
pretty-printed in local env (ZOHO_ENVIRONMENT='local') and are JSON-formatted in other envs.

Example usage:

```
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)
logger.info("Fetched page", product="crm", records=200)
```

## Log context

LogContext binds values that are included in every log message emitted inside the block, across awaits in the same
task. ApiClient.paginate binds ``product`` and ``path`` around a sweep:

```
from zoho_suite.utils.logging import LogContext

with LogContext(tool="list_leads"):
    result = await crm.get_all_records("Leads")  # page logs include tool, product and path
```

### Standard logging integration

We configure Python's standard `logging` module to route through structlog. This means that library code using
`logging.getLogger()` (httpx, httpcore) will automatically include context and be formatted correctly for the env.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import structlog
import structlog.contextvars

from zoho_suite.utils.config import get_zoho_environment


def _is_local_environment() -> bool:
    """Check if we're running in a local development environment."""
    return get_zoho_environment() == "local"


def _get_log_renderer() -> structlog.types.Processor:
    """Get the appropriate console renderer based on environment.

    Can be overridden with LOG_RENDERER environment variable:
    - 'console': Force ConsoleRenderer (human-readable with colors)
    - 'json': Force JSONRenderer (structured JSON output)

    Returns:
        ConsoleRenderer for local dev, JSONRenderer for everything else
    """
    log_renderer = os.getenv("LOG_RENDERER", "").lower()
    if log_renderer == "console":
        use_console = True
    elif log_renderer == "json":
        use_console = False
    else:
        use_console = _is_local_environment()

    if use_console:
        return structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=0,  # No padding to prevent wrapping
            force_colors=False,
            repr_native_str=False,
            exception_formatter=structlog.dev.plain_traceback,
            sort_keys=True,
            event_key="message",
        )
    else:
        return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """Configure structlog with environment-appropriate settings using built-in contextvars.

    Local development: Human-readable console output with colors
    Other environments: JSON format for log aggregation
    """
    common_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
        structlog.processors.EventRenamer("message"),
        structlog.stdlib.filter_by_level,  # Must come after add_log_level
    ]

    structlog.configure(
        processors=common_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain excludes filter_by_level: stdlib loggers do their own level filtering
    foreign_processors = [p for p in common_processors if p != structlog.stdlib.filter_by_level]
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_get_log_renderer(),
            foreign_pre_chain=foreign_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(stream_handler)

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    numeric_log_level = getattr(logging, log_level, logging.INFO)
    root_logger.setLevel(numeric_log_level)

    # httpx logs every request at INFO; our request middleware already does that
    if numeric_log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)


# Initialize structlog configuration when module is imported
configure_logging()


# Binds values for the duration of a with-block or a decorated function
LogContext = structlog.contextvars.bound_contextvars


def get_logger(name: str, **kwargs: Any) -> structlog.BoundLogger:
    """Get a logger instance. Wrapper around structlog.get_logger for convenience.

    Args:
        name: Logger name (usually __name__ from the calling module)

    Example:
        ```python
        logger = get_logger(__name__, component="pagination")
        logger.info("Starting")  # Includes component
        ```
    """
    return structlog.get_logger(name, **kwargs)


def redact_token(token: str | None) -> str:
    """Short preview of a secret that is safe to log."""
    if not token:
        return "<none>"
    return f"{token[:8]}...{token[-4:]}" if len(token) > 12 else "***"
