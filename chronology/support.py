"""Which subject types may carry scheduled events."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class SubjectTypeSupport:
    def __init__(self, types: Iterable[str] = ()) -> None:
        self._types: set[str] = set()
        for subject_type in types:
            self.add(subject_type)

    @property
    def types(self) -> list[str]:
        return sorted(self._types)

    def add(self, subject_type: str) -> None:
        self._types.add(subject_type)
        logger.debug("Enabled scheduled events for subject type %s", subject_type)

    def remove(self, subject_type: str) -> bool:
        if subject_type not in self._types:
            return False
        self._types.remove(subject_type)
        return True

    def supports(self, subject_type: str | None) -> bool:
        return subject_type is not None and subject_type in self._types


def default_subject_type_support(subject_types: Iterable[str]) -> SubjectTypeSupport:
    """Support registry seeded from the configured ``subject_types`` list."""
    return SubjectTypeSupport(subject_types)


__all__ = ["SubjectTypeSupport", "default_subject_type_support"]
