from __future__ import annotations

from chronology.models.actions import ActionDescriptor
from chronology.models.events import DispatchOutcome, Event, SaveResult, Subject

__all__ = [
    "ActionDescriptor",
    "DispatchOutcome",
    "Event",
    "SaveResult",
    "Subject",
]
