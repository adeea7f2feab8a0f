from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SubjectMetaStore(Protocol):
    async def read(self, subject_id: int, key: str) -> object | None: ...

    async def write(self, subject_id: int, key: str, value: object) -> None: ...

    async def subjects_with(self, key: str) -> list[int]: ...


__all__ = ["SubjectMetaStore"]
