"""
Structured Logging Configuration
Centralized logger with saga_id, tenant_id, user_id context
"""
from __future__ import annotations

import logging
import re
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


class PIIRedactionProcessor:
    """
    Structlog processor that masks the local part of email addresses
    anywhere inside the event dict (recursively).
    """
    P_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")

    def __call__(self, logger: Any, method_name: str, event_dict: Any) -> Any:
        return self._redact(event_dict)

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            return self.P_EMAIL.sub(lambda m: f"***@{m.group(2)}", value)
        return value


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    redact_pii: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Sets up structlog with processors for:
    - Adding timestamps
    - Adding log levels
    - Adding context (saga_id, tenant_id, user_id)
    - Email redaction (outside local/dev)
    - JSON formatting (production) or console (development)

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output JSON format (True for prod, False for dev)
        redact_pii: Whether to mask email local parts in every event
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if redact_pii:
        processors.append(PIIRedactionProcessor())

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("tenant_created", tenant_id=tenant.id)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all subsequent log entries of the current task.

    Usage:
        bind_context(saga_id=saga_id, channel="public_signup")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind context variables for the duration of a block, restoring the
    previous values afterwards.

    Usage:
        with log_context(saga_id=saga_id, channel="admin_checkout"):
            ...
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
