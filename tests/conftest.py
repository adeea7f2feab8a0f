from __future__ import annotations

import pytest
from chronology.actions.registry import ActionRegistry
from chronology.models.actions import ActionDescriptor

from tests.fakes import CountingMetaStore, RecordingScheduler


@pytest.fixture
def store() -> CountingMetaStore:
    return CountingMetaStore()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def registry() -> ActionRegistry:
    registry = ActionRegistry()
    registry.register_action_provider(
        None,
        lambda _subject: {
            "publish_post": ActionDescriptor(slug="publish_post", label="Publish Post"),
        },
    )
    return registry
