"""Logging setup with subject correlation context.

Every record carries the subject and action being worked on so a save, the
scheduler calls it makes and any later fired action can be tied together.
"""

from __future__ import annotations

import contextvars
import dataclasses
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TextIO


@dataclasses.dataclass(frozen=True, slots=True)
class CorrelationContext:
    subject_id: int | None = None
    action: str | None = None


_CORRELATION_CONTEXT: contextvars.ContextVar[CorrelationContext] = contextvars.ContextVar(
    "chronology_correlation_context",
    default=CorrelationContext(),
)

_TEXT_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s [subject=%(subject_id)s action=%(action)s] %(message)s"
)


def get_correlation_context() -> CorrelationContext:
    return _CORRELATION_CONTEXT.get()


class CorrelationFilter(logging.Filter):
    """Copy the current subject and action onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _CORRELATION_CONTEXT.get()
        record.subject_id = context.subject_id
        record.action = context.action
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object | None] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "subject_id": getattr(record, "subject_id", None),
            "action": getattr(record, "action", None),
        }
        if record.exc_info is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging(
    level: int | str = logging.INFO,
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Replace the root handlers with one correlation-aware stream handler.

    Records go to stderr by default so CLI output on stdout stays clean.
    APScheduler's own chatter is held at WARNING unless ``level`` is DEBUG.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream=stream if stream is not None else sys.stderr)
    handler.setFormatter(_JsonFormatter() if json_output else logging.Formatter(_TEXT_FORMAT))
    handler.addFilter(CorrelationFilter())
    root_logger.addHandler(handler)

    quiet = root_logger.getEffectiveLevel() > logging.DEBUG
    logging.getLogger("apscheduler").setLevel(logging.WARNING if quiet else logging.DEBUG)


@contextmanager
def correlation_scope(
    *,
    subject_id: int | None = None,
    action: str | None = None,
) -> Iterator[None]:
    """Set correlation fields for the enclosed block; ``None`` keeps the outer value."""
    overrides = {
        name: value
        for name, value in (("subject_id", subject_id), ("action", action))
        if value is not None
    }
    token = _CORRELATION_CONTEXT.set(
        dataclasses.replace(_CORRELATION_CONTEXT.get(), **overrides)
    )
    try:
        yield
    finally:
        _CORRELATION_CONTEXT.reset(token)


__all__ = [
    "CorrelationContext",
    "CorrelationFilter",
    "correlation_scope",
    "get_correlation_context",
    "setup_logging",
]
