from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class EventScheduler(Protocol):
    def register(self, run_at: int, action: str, context: Mapping[str, object]) -> bool: ...

    def deregister(self, run_at: int, action: str, context: Mapping[str, object]) -> bool: ...


__all__ = ["EventScheduler"]
