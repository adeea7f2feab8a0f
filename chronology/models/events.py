from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Subject(BaseModel):
    """The thing a queue belongs to, e.g. a content post."""

    model_config = ConfigDict(frozen=True)

    id: int
    type: str | None = None


class Event(BaseModel):
    """One scheduled invocation: run ``action`` at ``timestamp`` (UTC seconds)."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    action: str = Field(min_length=1)


class DispatchOutcome(BaseModel):
    event: Event
    operation: Literal["register", "deregister"]
    ok: bool
    error: str | None = None


class SaveResult(BaseModel):
    """What a save persisted and how each scheduler call went.

    The persisted list is committed regardless of dispatch failures, so
    ``failures`` is informational for the caller.
    """

    subject_id: int
    events: list[Event] = Field(default_factory=list)
    outcomes: list[DispatchOutcome] = Field(default_factory=list)

    @property
    def registered(self) -> list[DispatchOutcome]:
        return [outcome for outcome in self.outcomes if outcome.operation == "register"]

    @property
    def deregistered(self) -> list[DispatchOutcome]:
        return [outcome for outcome in self.outcomes if outcome.operation == "deregister"]

    @property
    def failures(self) -> list[DispatchOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failures


__all__ = ["DispatchOutcome", "Event", "SaveResult", "Subject"]
