"""Chronology CLI entry point and dependency wiring."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from chronology.config import ChronologySettings, load_config
from chronology.core.logging import setup_logging
from chronology.errors import ChronologyError
from chronology.models.events import SaveResult, Subject
from chronology.persistence.meta_store import SQLiteMetaStore
from chronology.persistence.migrations import run_migrations
from chronology.scheduler.ap_scheduler import ChronologyScheduler
from chronology.scheduler.hooks import ActionHooks, load_handlers
from chronology.service import ChronologyService

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = "config/chronology.yaml"


def _load_settings(config_path: str) -> ChronologySettings:
    if Path(config_path).exists():
        return load_config(config_path)
    return ChronologySettings()


def _db_path(settings: ChronologySettings) -> str:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return str(settings.db_path)


def build_scheduler(
    settings: ChronologySettings,
    hooks: ActionHooks | None = None,
) -> ChronologyScheduler:
    """A scheduler whose event jobs live in the chronology database."""
    _db_path(settings)
    return ChronologyScheduler(
        hooks,
        misfire_grace_seconds=settings.scheduler.misfire_grace_seconds,
        jobstore_url=settings.jobstore_url,
        poll_seconds=settings.scheduler.poll_seconds,
    )


def build_service(
    settings: ChronologySettings,
    scheduler: ChronologyScheduler | None = None,
) -> ChronologyService:
    store = SQLiteMetaStore(_db_path(settings))
    if scheduler is None:
        scheduler = build_scheduler(settings)
    return ChronologyService.from_settings(settings, store=store, scheduler=scheduler)


def _parse_event_option(value: str) -> dict[str, str]:
    when, sep, action = value.partition("=")
    if not sep:
        raise click.BadParameter(f"expected WHEN=ACTION, got {value!r}", param_hint="--event")
    return {"timestamp": when.strip(), "action": action.strip()}


def _echo_save_result(result: SaveResult) -> None:
    click.echo(f"Saved {len(result.events)} events for subject {result.subject_id}.")
    for outcome in result.failures:
        detail = f": {outcome.error}" if outcome.error else ""
        click.echo(
            f"warning: {outcome.operation} failed for {outcome.event.action} "
            f"at {outcome.event.timestamp}{detail}",
            err=True,
        )


@click.group()
@click.option("--config", "config_path", default=_DEFAULT_CONFIG, show_default=True)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """Chronology scheduled-event queue CLI."""
    try:
        settings = _load_settings(config_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.logging.level, json_output=settings.logging.json_output)
    ctx.obj = settings


@cli.command("init")
@click.pass_obj
def init_command(settings: ChronologySettings) -> None:
    """Create the data directory and apply database migrations."""
    applied = asyncio.run(run_migrations(_db_path(settings)))
    click.echo(f"Applied {len(applied)} migrations to {settings.db_path}.")


@cli.command("actions")
@click.argument("subject_id", type=int)
@click.option("--type", "subject_type", default="post", show_default=True)
@click.pass_obj
def actions_command(settings: ChronologySettings, subject_id: int, subject_type: str) -> None:
    """List the actions that may be scheduled for a subject."""
    service = build_service(settings)
    subject = Subject(id=subject_id, type=subject_type)
    try:
        queue = service.open_queue(subject)
    except ChronologyError as exc:
        raise click.ClickException(str(exc)) from exc
    actions = queue.get_actions()
    if not actions:
        click.echo("No actions available.")
        return
    for slug, descriptor in actions.items():
        label = getattr(descriptor, "label", slug)
        click.echo(f"{slug}\t{label}")


async def _list_events(settings: ChronologySettings, subject: Subject) -> list[str]:
    service = build_service(settings)
    await run_migrations(_db_path(settings))
    queue = service.open_queue(subject)
    lines = []
    for event in await queue.get_items():
        lines.append(f"{event.timestamp}\t{event.action}")
    return lines


@cli.command("list")
@click.argument("subject_id", type=int)
@click.option("--type", "subject_type", default="post", show_default=True)
@click.pass_obj
def list_command(settings: ChronologySettings, subject_id: int, subject_type: str) -> None:
    """List the stored events of a subject."""
    try:
        lines = asyncio.run(_list_events(settings, Subject(id=subject_id, type=subject_type)))
    except ChronologyError as exc:
        raise click.ClickException(str(exc)) from exc
    if not lines:
        click.echo("No scheduled events.")
    for line in lines:
        click.echo(line)


async def _save_events(
    settings: ChronologySettings,
    subject: Subject,
    rows: list[dict[str, str]],
) -> SaveResult:
    await run_migrations(_db_path(settings))
    scheduler = build_scheduler(settings)
    service = build_service(settings, scheduler=scheduler)
    queue = service.open_queue(subject)
    scheduler.start(paused=True)
    try:
        return await queue.save_items(rows)
    finally:
        scheduler.stop()


@cli.command("save")
@click.argument("subject_id", type=int)
@click.option("--type", "subject_type", default="post", show_default=True)
@click.option(
    "--event",
    "events",
    multiple=True,
    help="WHEN=ACTION, with WHEN in the configured time zone. Repeatable.",
)
@click.pass_obj
def save_command(
    settings: ChronologySettings,
    subject_id: int,
    subject_type: str,
    events: tuple[str, ...],
) -> None:
    """Replace a subject's events with the given ones.

    Jobs are written to the shared job table; a running `chronology run`
    fires new ones and skips cancelled ones.
    """
    rows = [_parse_event_option(value) for value in events]
    subject = Subject(id=subject_id, type=subject_type)
    try:
        result = asyncio.run(_save_events(settings, subject, rows))
    except ChronologyError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_save_result(result)


async def _run_forever(settings: ChronologySettings) -> None:
    await run_migrations(_db_path(settings))
    hooks = ActionHooks()
    load_handlers(hooks, settings.scheduler.handlers)
    scheduler = build_scheduler(settings, hooks)
    service = build_service(settings, scheduler=scheduler)
    scheduler.start()
    if settings.scheduler.restore_on_start:
        await service.restore()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()


@cli.command("run")
@click.pass_obj
def run_command(settings: ChronologySettings) -> None:
    """Restore stored events and run the scheduler until interrupted."""
    try:
        asyncio.run(_run_forever(settings))
    except ChronologyError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        click.echo("Shutting down.")


__all__ = ["build_scheduler", "build_service", "cli"]


if __name__ == "__main__":
    cli()
