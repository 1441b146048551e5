"""
Structured logging configuration for revintel.

Log lines are structlog events with per-request correlation IDs; console
output goes through rich, production output is one JSON object per line.
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

REDACTED = "***"

# Event keys whose values are never written out.
SENSITIVE_KEYS = frozenset(
    {"api_key", "openai_api_key", "tavily_api_key", "authorization", "credentials"}
)

# Provider SDKs are chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind a correlation ID to the current execution context."""
    correlation_id = correlation_id or str(uuid.uuid4())[:8]
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars("correlation_id")


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credential-bearing keys before rendering."""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(debug: bool = False, rich_output: bool = True) -> None:
    """
    Configure structured logging for the application.

    Args:
        debug: Enable debug level logging
        rich_output: Use rich formatting for console output
    """
    level = logging.DEBUG if debug else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.set_exc_info,
    ]

    if rich_output:
        console = Console(stderr=True)
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.rich_traceback,
            )
        )
        handler: logging.Handler = RichHandler(console=console, show_path=False)
    else:
        processors.extend([structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()])
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler])
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Reports go to stdout; logs stay on stderr so --json output can be piped.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
