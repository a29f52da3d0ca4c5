"""Request ID logging context for tracing one booking decision across modules.

Provides a request_id-aware logger that attaches the idempotency key of
the booking request being processed to every log record, so the read,
validate, commit and retry steps of a single decision can be grepped
together.

Usage:
    from booking_engine.logging_context import get_request_logger, set_request_id

    set_request_id("req_1")
    logger = get_request_logger(__name__)
    logger.info("Validating slot")  # record.request_id == "req_1"
"""

import logging
from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="NO_REQUEST_ID")


def set_request_id(request_id: str) -> None:
    """Set the request ID for the current async context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current request ID."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter adds ``request_id`` to each record so formatters can
    include ``%(request_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
