"""
Structured logging for the guardianship engine.

Wraps structlog with correlation IDs, JSON output for production and a
colourised console renderer for development.

Guardianship records are about children and incapacitated adults, so
operation logs pass through a redaction step before anything is written:
dates of birth, criminal-record notes, money amounts and bond policy numbers
never reach a log line.
"""

import contextvars
import logging
import os
import secrets
import sys
import time
from typing import Any

import structlog

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """Return a 22-character URL-safe correlation ID (128 bits of entropy)."""
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Get the current correlation ID, or generate a new one if not set."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor stamping the correlation ID on every event."""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_output: JSON lines (production) instead of console output (development)
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger for the given module.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


def is_production() -> bool:
    """True when the ENVIRONMENT variable is 'production' (default: development)."""
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


# Personal and financial fields kept out of logs
REDACTED_FIELDS = {
    "actor_id",
    "date_of_birth",
    "criminal_record_details",
    "amount",
    "annual_allowance",
    "estate_value",
    "policy_number",
    "surety_details",
}


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Replace sensitive values in a log context.

    Example:
        >>> redact_context({"amount": "50000", "guardian_id": "g-1"})
        {"amount": "***REDACTED***", "guardian_id": "g-1"}
    """
    return {
        k: "***REDACTED***" if k in REDACTED_FIELDS else v
        for k, v in context.items()
    }


class LogOperation:
    """Context manager logging start, completion or failure of an operation with timing."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        """
        Args:
            logger: Structured logger instance
            operation: Operation name (e.g. "replace_guardian")
            **context: Extra fields for every log line (redacted before output)
        """
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        self.start_time = time.perf_counter()
        self.logger.info(
            f"{self.operation} started",
            operation=self.operation,
            **redact_context(self.context),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration_ms = (time.perf_counter() - self.start_time) * 1000
        redacted = redact_context(self.context)

        if exc_type is None:
            self.logger.info(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=round(duration_ms, 2),
                **redacted,
            )
        else:
            # Stack traces only outside production
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=round(duration_ms, 2),
                error_type=exc_type.__name__,
                exc_info=not is_production(),
                **redacted,
            )
