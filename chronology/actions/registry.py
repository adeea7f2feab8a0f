"""Registry of schedulable actions, contributed by providers.

Providers are either global (apply to every subject) or type-specific
(keyed by a subject type string or a predicate over the subject). When a
subject's actions are computed, global providers run first and then the
type-specific ones, each in registration order. Their mappings are merged
into one ``slug -> descriptor`` dict where later providers win on slug
collision.

Contributed descriptors are passed through as-is; callers that need to
trust their shape validate them themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from chronology.models.actions import ActionDescriptor
from chronology.models.events import Subject

logger = logging.getLogger(__name__)

ActionProvider = Callable[[Subject], Mapping[str, object]]
SubjectPredicate = Callable[[Subject], bool]


@dataclass(frozen=True, slots=True)
class _ProviderEntry:
    provider: ActionProvider
    subject_type: str | None = None
    predicate: SubjectPredicate | None = None

    @property
    def is_global(self) -> bool:
        return self.subject_type is None and self.predicate is None

    def matches(self, subject: Subject) -> bool:
        if self.predicate is not None:
            return bool(self.predicate(subject))
        return subject.type is not None and subject.type == self.subject_type


class ActionRegistry:
    """Ordered collection of action providers.

    A registry built on a ``base`` consults the base's providers first,
    as they stand when actions are resolved.
    """

    def __init__(self, base: ActionRegistry | None = None) -> None:
        self._base = base
        self._entries: list[_ProviderEntry] = []

    def register_action_provider(
        self,
        predicate_or_type: str | SubjectPredicate | None,
        provider: ActionProvider,
    ) -> None:
        """Add a provider.

        Args:
            predicate_or_type: ``None`` for a global provider, a subject type
                name, or a callable deciding whether the provider applies.
            provider: Returns a mapping of action slug to descriptor.
        """
        if predicate_or_type is None:
            entry = _ProviderEntry(provider=provider)
        elif isinstance(predicate_or_type, str):
            entry = _ProviderEntry(provider=provider, subject_type=predicate_or_type)
        elif callable(predicate_or_type):
            entry = _ProviderEntry(provider=provider, predicate=predicate_or_type)
        else:
            raise TypeError("predicate_or_type must be None, a subject type, or a callable")
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def actions_for(self, subject: Subject) -> dict[str, ActionDescriptor]:
        entries = self._resolved_entries()
        actions: dict[str, object] = {}
        for entry in entries:
            if entry.is_global:
                actions.update(entry.provider(subject))
        for entry in entries:
            if not entry.is_global and entry.matches(subject):
                actions.update(entry.provider(subject))
        logger.debug("Resolved %d actions for subject %s", len(actions), subject.id)
        return actions  # type: ignore[return-value]

    def _resolved_entries(self) -> list[_ProviderEntry]:
        if self._base is None:
            return self._entries
        return [*self._base._resolved_entries(), *self._entries]


def descriptor_table(entries: Mapping[str, Mapping[str, str]]) -> dict[str, ActionDescriptor]:
    """Build descriptors from a ``slug -> {label, description}`` table."""
    return {
        slug: ActionDescriptor(
            slug=slug,
            label=fields.get("label", slug),
            description=fields.get("description", ""),
        )
        for slug, fields in entries.items()
    }


def register_configured_actions(
    registry: ActionRegistry,
    global_actions: Mapping[str, Mapping[str, str]],
    by_type: Mapping[str, Mapping[str, Mapping[str, str]]],
) -> None:
    """Register providers for action tables declared in configuration."""
    if global_actions:
        table = descriptor_table(global_actions)
        registry.register_action_provider(None, lambda _subject: table)
    for subject_type, entries in by_type.items():
        typed = descriptor_table(entries)
        registry.register_action_provider(subject_type, lambda _subject, t=typed: t)


default_registry = ActionRegistry()


def register_action_provider(
    predicate_or_type: str | SubjectPredicate | None,
    provider: ActionProvider,
) -> None:
    default_registry.register_action_provider(predicate_or_type, provider)


__all__ = [
    "ActionProvider",
    "ActionRegistry",
    "default_registry",
    "descriptor_table",
    "register_action_provider",
    "register_configured_actions",
]
