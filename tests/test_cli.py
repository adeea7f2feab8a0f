"""Tests for the chronology CLI."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest
from chronology.main import cli
from chronology.scheduler.ap_scheduler import event_job_id
from click.testing import CliRunner

from tests.helpers import epoch


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, filters, level = root.handlers[:], root.filters[:], root.level
    yield
    root.handlers[:] = handlers
    root.filters[:] = filters
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    path = tmp_path / "chronology.yaml"
    path.write_text(
        "chronology:\n"
        f"  data_dir: {tmp_path / 'data'}\n"
        "  timezone: UTC\n"
        "  subject_types: [post]\n"
        "  logging: {level: WARNING}\n"
        "  actions:\n"
        "    global:\n"
        "      publish_post: {label: Publish Post}\n",
        encoding="utf-8",
    )
    return str(path)


def _invoke(config_path: str, *args: str):
    return CliRunner().invoke(cli, ["--config", config_path, *args])


def test_init_applies_migrations(config_path: str, tmp_path: Path) -> None:
    result = _invoke(config_path, "init")

    assert result.exit_code == 0, result.output
    assert "Applied 1 migrations" in result.output
    assert (tmp_path / "data" / "chronology.db").exists()


def test_actions_lists_configured_actions(config_path: str) -> None:
    result = _invoke(config_path, "actions", "5")

    assert result.exit_code == 0, result.output
    assert "publish_post\tPublish Post" in result.output


def test_unsupported_type_is_an_error(config_path: str) -> None:
    result = _invoke(config_path, "actions", "5", "--type", "attachment")

    assert result.exit_code != 0
    assert "does not support scheduled events" in result.output


def test_save_then_list(config_path: str) -> None:
    saved = _invoke(
        config_path,
        "save",
        "5",
        "--event",
        "2026-11-01 09:00=publish_post",
        "--event",
        "=ignored",
    )
    assert saved.exit_code == 0, saved.output
    assert "Saved 1 events for subject 5." in saved.output

    listed = _invoke(config_path, "list", "5")
    assert listed.exit_code == 0, listed.output
    assert f"{epoch(2026, 11, 1, 9, 0)}\tpublish_post" in listed.output


def test_list_empty(config_path: str) -> None:
    result = _invoke(config_path, "list", "6")

    assert result.exit_code == 0, result.output
    assert "No scheduled events." in result.output


def test_bad_event_option(config_path: str) -> None:
    result = _invoke(config_path, "save", "5", "--event", "no-separator")

    assert result.exit_code != 0
    assert "WHEN=ACTION" in result.output


def _job_rows(tmp_path: Path) -> list[str]:
    conn = sqlite3.connect(tmp_path / "data" / "chronology.db")
    try:
        return [row[0] for row in conn.execute("SELECT id FROM apscheduler_jobs")]
    finally:
        conn.close()


def test_save_persists_and_cancels_jobs(config_path: str, tmp_path: Path) -> None:
    run_at = epoch(2030, 1, 1, 9, 0)

    saved = _invoke(config_path, "save", "5", "--event", "2030-01-01 09:00=publish_post")
    assert saved.exit_code == 0, saved.output
    assert "warning" not in saved.output
    assert _job_rows(tmp_path) == [event_job_id(run_at, "publish_post", {"subject_id": 5})]

    cleared = _invoke(config_path, "save", "5")
    assert cleared.exit_code == 0, cleared.output
    assert "Saved 0 events for subject 5." in cleared.output
    assert "warning" not in cleared.output
    assert _job_rows(tmp_path) == []


def test_resaving_the_same_event_keeps_one_job(config_path: str, tmp_path: Path) -> None:
    for _ in range(2):
        result = _invoke(config_path, "save", "5", "--event", "2030-01-01 09:00=publish_post")
        assert result.exit_code == 0, result.output

    assert len(_job_rows(tmp_path)) == 1


def test_run_rejects_unloadable_handler(config_path: str) -> None:
    with open(config_path, "a", encoding="utf-8") as handle:
        handle.write("  scheduler:\n    handlers:\n      publish_post: ['tests.fakes:missing']\n")

    result = _invoke(config_path, "run")

    assert result.exit_code != 0
    assert "cannot load handler 'tests.fakes:missing'" in result.output
