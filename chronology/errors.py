"""Exceptions raised by the chronology package."""

from __future__ import annotations


class ChronologyError(Exception):
    """Base class for chronology errors."""


class SubjectNotSupportedError(ChronologyError):
    def __init__(self, subject_type: str | None) -> None:
        self.subject_type = subject_type
        super().__init__(f"subject type {subject_type!r} does not support scheduled events")


class MigrationError(ChronologyError, RuntimeError):
    """A previously applied migration no longer matches its file."""


class HandlerConfigError(ChronologyError):
    """A configured action handler reference could not be loaded."""

    def __init__(self, action: str, ref: str, reason: str) -> None:
        self.action = action
        self.ref = ref
        super().__init__(f"cannot load handler {ref!r} for action {action!r}: {reason}")


__all__ = [
    "ChronologyError",
    "HandlerConfigError",
    "MigrationError",
    "SubjectNotSupportedError",
]
