"""
Command-line interface for ultradian.

Provides commands for recording task events, compiling rhythm profiles,
querying the current phase, and database management.
"""

import glob
import json
import logging
import os
import sys

from datetime import datetime
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Any

import click

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from ultradian.analysis.service import build_rhythm_service, recompute_profile
from ultradian.analysis.trigger import RecomputeTrigger
from ultradian.analysis.types import InsufficientData
from ultradian.config import (
    get_config_path,
    get_default_subject,
    get_rhythm_settings,
    get_trigger_settings,
    load_config,
    set_default_subject,
    unset_default_subject,
)
from ultradian.constants import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_LOAD_SCORE,
    DEFAULT_LOG_FILE,
    DEFAULT_SPECTRUM_TOP,
    EventType,
)
from ultradian.database import models
from ultradian.database.session import init_database, session_scope
from ultradian.database.stores import SQLEventStore, SQLProfileStore
from ultradian.logging_config import get_log_path, setup_logging
from ultradian.models.event import EventPoint, RecordedEvent
from ultradian.models.phase import PhaseReport
from ultradian.utils.timestamps import start_of_day, utc_now
from ultradian.utils.validation import (
    validate_instant,
    validate_subject_exists,
    validate_subject_id,
)

logger = logging.getLogger(__name__)

try:
    __version__ = get_version("ultradian")
except PackageNotFoundError:
    __version__ = "dev"


def open_database(db: str | None) -> str:
    """Initialize the database at --db (or the default path) and return the path."""
    return str(init_database(db or DEFAULT_DATABASE_PATH))


def resolve_subject(explicit_subject: str | None, db_session: Session) -> str:
    """
    Resolve subject using precedence: CLI > config > auto-detect.

    Args:
        explicit_subject: Value from --subject flag (None if not provided)
        db_session: Active database session

    Returns:
        Subject identifier to use

    Raises:
        click.ClickException: If the subject cannot be resolved
    """
    if explicit_subject:
        try:
            return validate_subject_id(explicit_subject)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--subject") from e

    subjects = SQLEventStore(db_session).list_subjects()
    known = [subject_id for subject_id, _ in subjects]

    config_subject = get_default_subject()
    if config_subject:
        if config_subject in known:
            return config_subject
        click.echo(
            f"Warning: Default subject '{config_subject}' has no events in database.",
            err=True,
        )
        click.echo(
            "Update with: ultradian config set-default-subject <id>",
            err=True,
        )

    if len(known) == 1:
        return known[0]

    if not known:
        raise click.ClickException(
            "No subjects found. Record events first: ultradian record <subject>"
        )
    raise click.ClickException(
        f"Multiple subjects found ({', '.join(known)}). "
        "Specify --subject <id> or set default: "
        "ultradian config set-default-subject <id>"
    )


def parse_instant_option(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> datetime | None:
    """Click callback turning an ISO-8601 option into an aware UTC datetime."""
    try:
        return validate_instant(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def version_callback(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Show version."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"ultradian, version {__version__}")
    ctx.exit()


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """ultradian: Cognitive Rhythm Tracker"""
    setup_logging(verbose=verbose, console_format="%(levelname)s: %(message)s")


@cli.command()
@click.argument("subject")
@click.option(
    "--load",
    "load_score",
    type=int,
    default=DEFAULT_LOAD_SCORE,
    show_default=True,
    help="Cognitive load of the task (1-10)",
)
@click.option(
    "--type",
    "event_type",
    type=click.Choice([e.value for e in EventType]),
    default=EventType.COMPLETED.value,
    show_default=True,
    help="Event type",
)
@click.option(
    "--at",
    callback=parse_instant_option,
    help="When it happened (ISO-8601, default: now)",
)
@click.option("--item", "item_id", help="Work item identifier")
@click.option(
    "--no-recompute",
    is_flag=True,
    help="Don't refresh the profile after a completion",
)
@click.option("--db", type=click.Path(), help="Database path")
def record(
    subject: str,
    load_score: int,
    event_type: str,
    at: datetime | None,
    item_id: str | None,
    no_recompute: bool,
    db: str | None,
) -> None:
    """Record a started or completed task for SUBJECT."""
    open_database(db)

    try:
        subject = validate_subject_id(subject)
        with session_scope() as session:
            event = SQLEventStore(session).record_event(
                subject,
                load_score=load_score,
                event_type=event_type,
                occurred_at=at,
                item_id=item_id,
            )
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    scheduled = False
    if event_type == EventType.COMPLETED.value and not no_recompute:
        # One-shot process: wait for the refresh before exiting
        trigger = RecomputeTrigger(recompute_profile, settings=get_trigger_settings())
        scheduled = trigger.signal_completion(subject)
        trigger.shutdown(wait=True)

    recorded = RecordedEvent.from_event(event, recompute_scheduled=scheduled)
    click.echo(
        f"✓ Recorded {recorded.event_type} event for {recorded.subject_id} "
        f"at {recorded.occurred_at} (load {recorded.load_score})"
    )
    if scheduled:
        click.echo("  Profile recompute completed")


@cli.command()
@click.option("--subject", "-s", help="Subject identifier (default: from config)")
@click.option("--db", type=click.Path(), help="Database path")
def compute(subject: str | None, db: str | None) -> None:
    """Compile and store the subject's rhythm profile now."""
    open_database(db)

    with session_scope() as session:
        subject_id = resolve_subject(subject, session)
        service = build_rhythm_service(session)
        outcome = service.compiler.compute_profile(subject_id)

        if isinstance(outcome, InsufficientData):
            click.echo(PhaseReport.insufficient(outcome).message, err=True)
            sys.exit(1)

        click.echo(f"\n✓ Profile compiled for {subject_id}")
        click.echo(f"  Cycle: {outcome.dominant_period_seconds / 60:.2f} min")
        click.echo(f"  Confidence: {outcome.confidence:.4f}")
        click.echo(f"  Amplitude: {outcome.amplitude:.3f}")
        click.echo(f"  Peak anchor: {outcome.phase_anchor_at.isoformat()}")
        click.echo(f"  Events analysed: {outcome.sample_count}")


@cli.command()
@click.option("--subject", "-s", help="Subject identifier (default: from config)")
@click.option(
    "--at",
    callback=parse_instant_option,
    help="Reference instant (ISO-8601, default: now)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--db", type=click.Path(), help="Database path")
def phase(
    subject: str | None, at: datetime | None, as_json: bool, db: str | None
) -> None:
    """Show the subject's current cognitive phase."""
    open_database(db)

    with session_scope() as session:
        subject_id = resolve_subject(subject, session)
        outcome = build_rhythm_service(session).get_current_phase(subject_id, now=at)
        report = PhaseReport.from_outcome(outcome)

    if as_json:
        _echo_json(report.model_dump())
        return

    if not report.has_profile:
        click.echo(report.message)
        return

    click.echo(f"\nSubject: {subject_id}")
    click.echo(f"Phase: {str(report.phase).upper()}")
    click.echo(f"Cycle: {report.dominant_cycle_minutes} min")
    click.echo(f"Next peak: {report.next_peak_at}")
    click.echo(f"Wave position: {report.amplitude_fraction:+.4f}")
    click.echo(f"Confidence: {report.confidence} ({report.sample_count} events)\n")


@cli.command()
@click.option("--subject", "-s", help="Subject identifier (default: from config)")
@click.option(
    "--all-types",
    is_flag=True,
    help="Include started events as well as completions",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--db", type=click.Path(), help="Database path")
def events(
    subject: str | None, all_types: bool, as_json: bool, db: str | None
) -> None:
    """List today's (UTC) events in chronological order."""
    open_database(db)

    with session_scope() as session:
        subject_id = resolve_subject(subject, session)
        found = SQLEventStore(session).fetch_events_between(
            subject_id,
            start_of_day(utc_now()),
            event_types=None if all_types else [EventType.COMPLETED.value],
        )

    if as_json:
        _echo_json([EventPoint.from_event(event).model_dump() for event in found])
        return

    if not found:
        click.echo(f"No events today for {subject_id}")
        return

    click.echo(f"\nToday's events for {subject_id}:\n")
    click.echo(f"{'Time (UTC)':<28} {'Type':<10} {'Load':>4}  Item")
    click.echo("-" * 60)
    for event in found:
        point = EventPoint.from_event(event)
        click.echo(
            f"{point.occurred_at:<28} {event.event_type:<10} "
            f"{point.load_score:>4}  {point.item_id or ''}"
        )
    click.echo(f"\nTotal: {len(found)} event(s)")


@cli.command()
@click.option("--subject", "-s", help="Subject identifier (default: from config)")
@click.option(
    "--top",
    "-n",
    type=click.IntRange(min=1),
    default=DEFAULT_SPECTRUM_TOP,
    show_default=True,
    help="Number of trial periods to show",
)
@click.option("--db", type=click.Path(), help="Database path")
def spectrum(subject: str | None, top: int, db: str | None) -> None:
    """Show the strongest trial periods without storing a profile."""
    open_database(db)

    with session_scope() as session:
        subject_id = resolve_subject(subject, session)
        outcome = build_rhythm_service(session).compiler.inspect_spectrum(subject_id)

    if isinstance(outcome, InsufficientData):
        click.echo(PhaseReport.insufficient(outcome).message, err=True)
        sys.exit(1)

    ranked = sorted(outcome.spectrum, key=lambda point: point.power, reverse=True)

    click.echo(f"\nSpectrum for {subject_id} (top {min(top, len(ranked))}):\n")
    click.echo(f"{'Period (min)':>12}  {'Power':>7}")
    click.echo("-" * 21)
    for point in ranked[:top]:
        marker = " *" if point.period == outcome.dominant_period_seconds else ""
        click.echo(f"{point.period / 60:>12.2f}  {point.power:>7.4f}{marker}")
    click.echo()


@cli.command()
@click.option("--db", type=click.Path(), help="Database path")
def profiles(db: str | None) -> None:
    """List cached rhythm profiles."""
    open_database(db)

    with session_scope() as session:
        cached = SQLProfileStore(session).list_profiles()

    if not cached:
        click.echo("No profiles found in database")
        return

    click.echo("\nCached Profiles:\n")
    for profile in cached:
        click.echo(f"Subject: {profile.subject_id}")
        click.echo(f"  Cycle: {profile.dominant_period_seconds / 60:.2f} min")
        click.echo(f"  Confidence: {profile.confidence:.4f}")
        click.echo(f"  Events: {profile.sample_count}")
        click.echo(f"  Computed: {profile.computed_at:%Y-%m-%d %H:%M:%S} UTC")
        click.echo()


@cli.group()
def db() -> None:
    """Database management commands."""
    pass


@db.command()
@click.option("--db", type=click.Path(), help="Database path")
def init(db: str | None) -> None:
    """Initialize database (creates tables if needed)."""
    db_path = open_database(db)
    click.echo(f"✓ Database initialized at {db_path}")


@db.command()
@click.option("--db", type=click.Path(), help="Database path")
def stats(db: str | None) -> None:
    """Show database statistics."""
    db_path = Path(open_database(db))

    with session_scope() as session:
        subject_count = session.query(
            func.count(func.distinct(models.CognitiveEvent.subject_id))
        ).scalar()
        event_counts = dict(
            session.query(models.CognitiveEvent.event_type, func.count())
            .group_by(models.CognitiveEvent.event_type)
            .all()
        )
        profile_count = session.query(models.CognitiveProfile).count()
        first_event, last_event = session.query(
            func.min(models.CognitiveEvent.occurred_at),
            func.max(models.CognitiveEvent.occurred_at),
        ).one()

    size_bytes = os.path.getsize(db_path) if db_path.exists() else 0
    size_mb = size_bytes / (1024 * 1024)

    click.echo("\n📊 Database Statistics")
    click.echo(f"{'=' * 50}")
    click.echo(f"Database: {db_path}")
    click.echo(f"Size: {size_mb:.1f} MB")
    click.echo(f"\nSubjects: {subject_count}")
    for event_type in EventType:
        click.echo(
            f"{event_type.value.capitalize()} events: {event_counts.get(event_type.value, 0)}"
        )
    click.echo(f"Profiles: {profile_count}")

    if first_event and last_event:
        click.echo(f"\nDate range: {first_event:%Y-%m-%d} to {last_event:%Y-%m-%d}")

    click.echo(f"{'=' * 50}\n")


@db.command()
@click.option("--db", type=click.Path(), help="Database path")
@click.confirmation_option(prompt="Are you sure you want to vacuum the database?")
def vacuum(db: str | None) -> None:
    """Optimize database (reclaim space after deletions)."""
    open_database(db)

    click.echo("Vacuuming database...")

    with session_scope() as session:
        session.execute(text("VACUUM"))

    click.echo("✓ Database vacuumed successfully")


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("set-default-subject")
@click.argument("subject_id")
@click.option("--db", type=click.Path(), help="Database path")
def set_default_subject_cmd(subject_id: str, db: str | None) -> None:
    """Set default subject for CLI commands (must have events in database)."""
    open_database(db)

    with session_scope() as session:
        try:
            validate_subject_exists(subject_id, session)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            known = [s for s, _ in SQLEventStore(session).list_subjects()]
            if known:
                click.echo(f"Available subjects: {', '.join(known)}", err=True)
            sys.exit(1)

    set_default_subject(subject_id)
    click.echo(f"✓ Default subject: {subject_id}")
    click.echo(f"  Config: {get_config_path()}")


@config.command("get-default-subject")
def get_default_subject_cmd() -> None:
    """Show current default subject."""
    default = get_default_subject()
    if default:
        click.echo(f"Default subject: {default}")
        click.echo(f"  (from {get_config_path()})")
    else:
        click.echo("No default subject configured.")
        click.echo("Set with: ultradian config set-default-subject <id>")


@config.command("unset-default-subject")
def unset_default_subject_cmd() -> None:
    """Remove default subject setting."""
    default = get_default_subject()
    if default:
        unset_default_subject()
        click.echo(f"✓ Removed default subject: {default}")
    else:
        click.echo("No default subject was configured.")


@config.command("show")
def show_config_cmd() -> None:
    """Show all configuration settings, with effective rhythm settings."""
    config_path = get_config_path()
    if not config_path.exists():
        click.echo(f"No config file: {config_path}")
    else:
        click.echo(f"Config file: {config_path}\n")
        config_data = load_config()
        if not config_data:
            click.echo("Configuration is empty.")
        else:
            click.echo("Settings:")
            for table, values in config_data.items():
                click.echo(f"  [{table}]")
                if isinstance(values, dict):
                    for key, value in values.items():
                        click.echo(f"    {key} = {json.dumps(value)}")

    try:
        rhythm = get_rhythm_settings()
        trigger = get_trigger_settings()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    click.echo("\nEffective settings:")
    for key, value in {**rhythm.model_dump(), **trigger.model_dump()}.items():
        click.echo(f"  {key} = {value}")


@cli.group()
def logs() -> None:
    """Log file management commands."""
    pass


def _log_files(log_path: Path) -> list[Path]:
    backups = sorted(glob.glob(str(log_path.parent / f"{DEFAULT_LOG_FILE}.*")))
    return [log_path] + [Path(f) for f in backups]


@logs.command("path")
def logs_path() -> None:
    """Show log file location."""
    log_path = get_log_path()
    click.echo(f"Log file: {log_path}")

    if log_path.exists():
        size_mb = log_path.stat().st_size / (1024 * 1024)
        click.echo(f"Size: {size_mb:.2f} MB")

        backup_files = _log_files(log_path)[1:]
        if backup_files:
            click.echo(f"Backup files: {len(backup_files)}")
    else:
        click.echo("(File does not exist yet)")


@logs.command("show")
@click.option("--lines", "-n", type=int, default=50, help="Number of lines to show")
@click.option("--follow", "-f", is_flag=True, help="Follow log output (like tail -f)")
def logs_show(lines: int, follow: bool) -> None:
    """Show recent log entries."""
    log_path = get_log_path()

    if not log_path.exists():
        click.echo("No log file found", err=True)
        sys.exit(1)

    if follow:
        import subprocess

        try:
            subprocess.run(["tail", "-f", str(log_path)], check=True)
        except KeyboardInterrupt:
            pass
        except FileNotFoundError:
            click.echo("Error: 'tail' command not found", err=True)
            sys.exit(1)
    else:
        try:
            with open(log_path, encoding="utf-8") as f:
                all_lines = f.readlines()
        except OSError as e:
            click.echo(f"Error reading log file: {e}", err=True)
            sys.exit(1)

        for line in all_lines[-lines:]:
            click.echo(line.rstrip())


@logs.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear all log files?")
def logs_clear() -> None:
    """Clear all log files."""
    log_path = get_log_path()

    removed_count = 0
    for log_file in _log_files(log_path):
        if log_file.exists():
            try:
                log_file.unlink()
                removed_count += 1
            except OSError as e:
                click.echo(f"Failed to remove {log_file}: {e}", err=True)

    if removed_count > 0:
        click.echo(f"Removed {removed_count} log file(s)")
    else:
        click.echo("No log files to remove")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
