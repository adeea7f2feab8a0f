"""Per-subject queue of scheduled events.

A queue owns the event list of one subject. Saving a submitted list is a
full replacement: every well-formed submitted event is (re)registered with
the scheduler, events that were stored before but are no longer submitted
are deregistered, and the submitted list becomes the stored state.
Scheduler failures are collected in the returned ``SaveResult`` and never
stop the stored state from being written.

A queue is meant to live for one operation (rendering a form, handling a
submission). It loads lazily, caches what it loaded and never notices
changes made by another queue for the same subject. Two concurrent saves
for one subject race; the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, tzinfo
from typing import Literal

from pydantic import ValidationError

from chronology.actions.registry import ActionRegistry, default_registry
from chronology.core.logging import correlation_scope
from chronology.models.actions import ActionDescriptor
from chronology.models.events import DispatchOutcome, Event, SaveResult, Subject
from chronology.protocols.scheduler import EventScheduler
from chronology.protocols.storage import SubjectMetaStore
from chronology.queue.normalize import sanitize_text_field, to_utc_timestamp

logger = logging.getLogger(__name__)

QUEUE_META_KEY = "_chronology_queue"

_SchedulerCall = Callable[[int, str, Mapping[str, object]], bool]


class Queue:
    """Scheduled events for a single subject."""

    def __init__(
        self,
        subject: Subject | int,
        *,
        store: SubjectMetaStore,
        scheduler: EventScheduler,
        registry: ActionRegistry | None = None,
        timezone: tzinfo | str = UTC,
    ) -> None:
        if not isinstance(subject, Subject):
            subject = Subject(id=int(subject))
        self._subject = subject
        self._store = store
        self._scheduler = scheduler
        self._registry = registry if registry is not None else default_registry
        self._timezone = timezone
        self._actions: dict[str, ActionDescriptor] | None = None
        self._items: list[Event] | None = None

    @property
    def subject(self) -> Subject:
        return self._subject

    @property
    def subject_id(self) -> int:
        return self._subject.id

    def get_actions(self) -> dict[str, ActionDescriptor]:
        """Actions that may be scheduled for this subject, keyed by slug."""
        if self._actions is None:
            self._actions = self._registry.actions_for(self._subject)
        return dict(self._actions)

    async def get_items(self) -> list[Event]:
        """The stored events, loaded on first access."""
        if self._items is None:
            raw = await self._store.read(self.subject_id, QUEUE_META_KEY)
            self._items = _coerce_event_list(raw)
        return list(self._items)

    async def save_items(
        self,
        items: Iterable[Mapping[str, object]] | Mapping[str, Mapping[str, object]],
    ) -> SaveResult:
        """Replace the stored events with ``items``.

        ``items`` is a sequence of rows, or a mapping whose keys are
        arbitrary row labels. Each row needs non-empty ``timestamp`` and
        ``action`` values; rows without them are skipped.
        """
        with correlation_scope(subject_id=self.subject_id):
            current = await self.get_items()
            result = SaveResult(subject_id=self.subject_id)
            queue: list[Event] = []

            for row in _iter_rows(items):
                event = self._normalize(row)
                if event is None:
                    continue
                result.outcomes.append(
                    self._dispatch("register", event, self._scheduler.register)
                )
                queue.append(event)

            for event in _removed_events(current, queue):
                result.outcomes.append(
                    self._dispatch("deregister", event, self._scheduler.deregister)
                )

            await self._store.write(
                self.subject_id,
                QUEUE_META_KEY,
                [event.model_dump(mode="json") for event in queue],
            )
            self._items = list(queue)
            result.events = queue

            if result.failures:
                logger.warning(
                    "Saved %d events with %d scheduler failures",
                    len(queue),
                    len(result.failures),
                )
            else:
                logger.info("Saved %d events", len(queue))
            return result

    def build_event_context(self) -> dict[str, object]:
        """Context passed to the scheduler; identical for every event of a subject."""
        return {"subject_id": self.subject_id}

    def _normalize(self, row: object) -> Event | None:
        if not isinstance(row, Mapping):
            return None
        if "timestamp" not in row or "action" not in row:
            return None
        raw_timestamp = row["timestamp"]
        raw_action = row["action"]
        if not _present(raw_timestamp) or not _present(raw_action):
            return None

        try:
            timestamp = to_utc_timestamp(str(raw_timestamp), self._timezone)
        except ValueError:
            logger.warning("Skipping row with unparseable timestamp %r", raw_timestamp)
            return None
        action = sanitize_text_field(str(raw_action))
        if not action:
            return None
        return Event(timestamp=timestamp, action=action)

    def _dispatch(
        self,
        operation: Literal["register", "deregister"],
        event: Event,
        call: _SchedulerCall,
    ) -> DispatchOutcome:
        try:
            ok = bool(call(event.timestamp, event.action, self.build_event_context()))
        except Exception as exc:
            logger.warning(
                "Scheduler %s failed for %s at %d: %s",
                operation,
                event.action,
                event.timestamp,
                exc,
            )
            return DispatchOutcome(event=event, operation=operation, ok=False, error=str(exc))

        if not ok:
            logger.warning(
                "Scheduler refused %s for %s at %d", operation, event.action, event.timestamp
            )
        return DispatchOutcome(event=event, operation=operation, ok=ok)


def _present(value: object) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _iter_rows(
    items: Iterable[Mapping[str, object]] | Mapping[str, Mapping[str, object]],
) -> Iterable[object]:
    if isinstance(items, Mapping):
        return items.values()
    return items


def _removed_events(current: list[Event], queue: list[Event]) -> list[Event]:
    """Stored events with no equal event in the new queue.

    Membership by value, not position, so reordering never removes anything.
    Each stored occurrence is reported on its own.
    """
    keep = set(queue)
    return [event for event in current if event not in keep]


def _coerce_event_list(raw: object) -> list[Event]:
    if raw is None or isinstance(raw, (str, bytes, Mapping)):
        return []
    if not isinstance(raw, Iterable):
        return []

    events: list[Event] = []
    for entry in raw:
        try:
            events.append(Event.model_validate(entry))
        except ValidationError:
            logger.warning("Ignoring malformed stored event %r", entry)
    return events


__all__ = ["QUEUE_META_KEY", "Queue"]
