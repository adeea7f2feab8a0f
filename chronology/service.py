"""Runtime wiring: one place that knows the store, the scheduler and the registries."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from chronology.actions.registry import (
    ActionRegistry,
    default_registry,
    register_configured_actions,
)
from chronology.config import ChronologySettings
from chronology.core.logging import correlation_scope
from chronology.errors import SubjectNotSupportedError
from chronology.models.events import Subject
from chronology.protocols.scheduler import EventScheduler
from chronology.protocols.storage import SubjectMetaStore
from chronology.queue.queue import QUEUE_META_KEY, Queue
from chronology.support import SubjectTypeSupport, default_subject_type_support

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChronologyService:
    store: SubjectMetaStore
    scheduler: EventScheduler
    settings: ChronologySettings = field(default_factory=ChronologySettings)
    registry: ActionRegistry = field(default_factory=lambda: default_registry)
    support: SubjectTypeSupport | None = None

    def __post_init__(self) -> None:
        if self.support is None:
            self.support = default_subject_type_support(self.settings.subject_types)

    @classmethod
    def from_settings(
        cls,
        settings: ChronologySettings,
        store: SubjectMetaStore,
        scheduler: EventScheduler,
        base_registry: ActionRegistry | None = None,
    ) -> ChronologyService:
        """Build a service whose registry adds the configured actions.

        The configured tables are layered on ``base_registry`` (the default
        registry unless given), so providers registered in code still apply.
        """
        registry = ActionRegistry(
            base=base_registry if base_registry is not None else default_registry
        )
        register_configured_actions(
            registry,
            {
                slug: entry.model_dump()
                for slug, entry in settings.actions.global_actions.items()
            },
            {
                subject_type: {slug: entry.model_dump() for slug, entry in entries.items()}
                for subject_type, entries in settings.actions.by_type.items()
            },
        )
        return cls(store=store, scheduler=scheduler, settings=settings, registry=registry)

    def open_queue(self, subject: Subject) -> Queue:
        """A new queue for ``subject``.

        Raises:
            SubjectNotSupportedError: If the subject's type is not enabled.
        """
        if self.support is None or not self.support.supports(subject.type):
            raise SubjectNotSupportedError(subject.type)
        return Queue(
            subject,
            store=self.store,
            scheduler=self.scheduler,
            registry=self.registry,
            timezone=self.settings.tzinfo,
        )

    async def restore(self, now: int | None = None) -> int:
        """Re-register stored future events with the scheduler.

        Timer jobs live in memory, so after a restart the stored queues are
        the only record of them. Events at or before ``now`` are left alone.

        Returns:
            The number of events registered.
        """
        cutoff = int(time.time()) if now is None else now
        registered = 0
        for subject_id in await self.store.subjects_with(QUEUE_META_KEY):
            queue = Queue(
                subject_id,
                store=self.store,
                scheduler=self.scheduler,
                registry=self.registry,
                timezone=self.settings.tzinfo,
            )
            context = queue.build_event_context()
            with correlation_scope(subject_id=subject_id):
                for event in await queue.get_items():
                    if event.timestamp <= cutoff:
                        continue
                    try:
                        ok = self.scheduler.register(event.timestamp, event.action, context)
                    except Exception as exc:
                        logger.warning("Could not restore %s: %s", event.action, exc)
                        continue
                    if ok:
                        registered += 1
        logger.info("Restored %d scheduled events", registered)
        return registered


__all__ = ["ChronologyService"]
