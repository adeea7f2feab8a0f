"""Chronology: per-subject queues of scheduled events."""

from chronology.actions.registry import ActionRegistry, register_action_provider
from chronology.models import ActionDescriptor, DispatchOutcome, Event, SaveResult, Subject
from chronology.queue.queue import QUEUE_META_KEY, Queue
from chronology.service import ChronologyService

__version__ = "0.1.0"

__all__ = [
    "QUEUE_META_KEY",
    "ActionDescriptor",
    "ActionRegistry",
    "ChronologyService",
    "DispatchOutcome",
    "Event",
    "Queue",
    "SaveResult",
    "Subject",
    "register_action_provider",
]
