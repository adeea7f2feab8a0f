"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from chronology.config import ChronologySettings, LoggingConfig, SchedulerConfig, load_config
from pydantic import ValidationError


class TestDefaults:
    def test_defaults(self) -> None:
        settings = ChronologySettings()
        assert settings.timezone == "UTC"
        assert settings.subject_types == ["post"]
        assert settings.db_path == Path("./data") / "chronology.db"
        assert settings.scheduler.misfire_grace_seconds == 300
        assert settings.scheduler.handlers == {}
        assert settings.jobstore_url == f"sqlite:///{Path('./data') / 'chronology.db'}"

    def test_tzinfo(self) -> None:
        assert ChronologySettings(timezone="Europe/Berlin").tzinfo.key == "Europe/Berlin"


class TestValidation:
    def test_unknown_timezone_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unknown time zone"):
            ChronologySettings(timezone="Mars/Olympus_Mons")

    def test_log_level_normalized(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_misfire_grace_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            SchedulerConfig(misfire_grace_seconds=0)


class TestLoadConfig:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="top-level mapping"):
            load_config(path)

    def test_reads_section(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(
            "chronology:\n"
            "  timezone: America/New_York\n"
            "  subject_types: [post, page]\n"
            "  actions:\n"
            "    global:\n"
            "      publish_post:\n"
            "        label: Publish Post\n"
            "    by_type:\n"
            "      page:\n"
            "        unlist: {label: Unlist}\n"
            "  scheduler:\n"
            "    handlers:\n"
            "      publish_post: ['myapp.handlers:publish']\n",
            encoding="utf-8",
        )

        settings = load_config(path)

        assert settings.timezone == "America/New_York"
        assert settings.subject_types == ["post", "page"]
        assert settings.actions.global_actions["publish_post"].label == "Publish Post"
        assert settings.actions.by_type["page"]["unlist"].label == "Unlist"
        assert settings.scheduler.handlers == {"publish_post": ["myapp.handlers:publish"]}

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("timezone: UTC\n", encoding="utf-8")
        monkeypatch.setenv("CHRONOLOGY_TIMEZONE", "Asia/Tokyo")
        monkeypatch.setenv("CHRONOLOGY_SCHEDULER__MISFIRE_GRACE_SECONDS", "60")

        settings = load_config(path)

        assert settings.timezone == "Asia/Tokyo"
        assert settings.scheduler.misfire_grace_seconds == 60
