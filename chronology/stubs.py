"""In-memory collaborator implementations for embedding and tests."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


@dataclass(slots=True)
class InMemoryMetaStore:
    """Subject metadata kept in a dict. Values are deep-copied in and out."""

    values: dict[tuple[int, str], object] = field(default_factory=dict)

    async def read(self, subject_id: int, key: str) -> object | None:
        if (subject_id, key) not in self.values:
            return None
        return copy.deepcopy(self.values[(subject_id, key)])

    async def write(self, subject_id: int, key: str, value: object) -> None:
        self.values[(subject_id, key)] = copy.deepcopy(value)

    async def subjects_with(self, key: str) -> list[int]:
        return sorted(subject_id for subject_id, meta_key in self.values if meta_key == key)


__all__ = ["InMemoryMetaStore"]
