"""DailyChamp CLI - daily task journal with Nextcloud sync."""

import json
import logging
import sys
import time
from datetime import date
from pathlib import Path
from posixpath import dirname

import click

from .adapters.file_store import FileStore, LocalStorageError
from .adapters.webdav import SyncError, WebDAVAdapter
from .config import CONFIG_FILE, Credentials, load_config
from .core import (
    MAX_TASKS,
    DailyEntry,
    Section,
    SectionType,
    Task,
    format_hours,
    is_valid_format,
    parse_duration,
)
from .core.entry import is_reflections
from .core.writer import write_day
from .journal import create_sync_engine, get_journal
from .sync import SyncResult

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_date(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid date {value!r}, expected YYYY-MM-DD")


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _find_section(entry: DailyEntry, name: str) -> Section | None:
    return next((s for s in entry.sections if s.name.lower() == name.lower()), None)


@click.group()
@click.version_option()
def main():
    """DailyChamp - one markdown journal, up to seven tasks a day."""
    pass


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Day to show (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(target_date: str | None, as_json: bool):
    """Show one day of the journal."""
    target = _parse_date(target_date)
    try:
        entry = get_journal(load_config()).read_day(target)
    except LocalStorageError as e:
        _fail(str(e))

    if entry is None:
        click.echo(f"No entry for {target.isoformat()}.")
        return

    if as_json:
        click.echo(json.dumps(entry.to_dict(), indent=2))
        return

    click.echo(write_day(entry))
    click.echo()
    click.echo(
        f"{entry.status().display_name}: {entry.completed_count}/{entry.total_count} done, "
        f"{format_hours(entry.total_hours)} planned"
    )


@main.command()
@click.option("--month", "-m", default=None, help="Only this month (YYYY-MM)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def days(month: str | None, as_json: bool):
    """List journal days with their status."""
    journal = get_journal(load_config())
    try:
        if month:
            try:
                year, month_num = (int(part) for part in month.split("-", 1))
            except ValueError:
                raise click.BadParameter(f"Invalid month {month!r}, expected YYYY-MM")
            entries = journal.entries_for_month(year, month_num)
        else:
            entries = journal.read_entries()
    except LocalStorageError as e:
        _fail(str(e))

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "date": e.date.isoformat(),
                        "status": e.status().value,
                        "completed": e.completed_count,
                        "total": e.total_count,
                        "hours": e.total_hours,
                    }
                    for e in entries
                ],
                indent=2,
            )
        )
        return

    if not entries:
        click.echo("No entries.")
        return

    for e in entries:
        click.echo(
            f"[{e.status().badge}] {e.date.isoformat()} {e.day_of_week:9} "
            f"{e.completed_count}/{e.total_count}  {format_hours(e.total_hours)}"
        )


@main.command("add-task")
@click.argument("title")
@click.option("--hours", "duration", default="1h", help="Estimate, e.g. 2h or 30m")
@click.option("--date", "-d", "target_date", default=None, help="Day (YYYY-MM-DD)")
@click.option("--section", "-s", default="Tasks", help="Section to add the task to")
def add_task(title: str, duration: str, target_date: str | None, section: str):
    """Add a task to a day."""
    target = _parse_date(target_date)
    title = title.strip()
    if not title or "|" in title:
        raise click.BadParameter("Task title must be non-empty and must not contain '|'")

    journal = get_journal(load_config())
    try:
        entry = journal.read_day(target) or DailyEntry(date=target)
        if entry.total_count >= MAX_TASKS:
            _fail(f"{target.isoformat()} already has {MAX_TASKS} tasks")

        task = Task(title=title, hours=parse_duration(duration))
        legacy = not entry.sections and (
            entry.tasks or entry.goals or entry.notes or entry.reflections
        )
        if not legacy:
            existing = _find_section(entry, section)
            if is_reflections(section):
                _fail(f"{section!r} is a text section, not a task list")
            if existing is None:
                entry.add_section(Section(name=section, type=SectionType.TASKS))
                existing = entry.sections[-1]
            entry.add_item_to_section(existing.name, task.to_line(), task)
        else:
            # Legacy day without sections: keep the flat layout
            entry.add_task(task)
        journal.write_day(entry)
    except LocalStorageError as e:
        _fail(str(e))

    click.echo(f"Added: {task.to_line()}")


@main.command()
@click.argument("title")
@click.option("--date", "-d", "target_date", default=None, help="Day (YYYY-MM-DD)")
def toggle(title: str, target_date: str | None):
    """Mark a task done, or not done."""
    target = _parse_date(target_date)
    journal = get_journal(load_config())
    try:
        entry = journal.read_day(target)
        task = entry.find_task(title) if entry else None
        if task is None:
            _fail(f"No task {title!r} on {target.isoformat()}")
        task.toggle()
        journal.write_day(entry)
    except LocalStorageError as e:
        _fail(str(e))

    click.echo(task.to_line())


@main.command()
@click.option("--check/--no-check", default=True, help="Verify the password against the server")
def login(check: bool):
    """Store the Nextcloud app password."""
    config = load_config()
    if not config.sync_enabled:
        _fail(f"Set nextcloud_url and nextcloud_username in {CONFIG_FILE} first")

    password = click.prompt("Nextcloud app password", hide_input=True)

    if check:
        adapter = WebDAVAdapter(
            config.nextcloud_url, config.nextcloud_username, password, config.nextcloud_path
        )
        try:
            adapter.exists()
        except SyncError as e:
            _fail(str(e))

    Credentials(password=password).save()
    click.echo("Credentials saved.")


@main.command()
def sync():
    """Run one sync cycle now."""
    engine = create_sync_engine(load_config())
    if engine is None:
        _fail("Sync is not configured. Run 'dailychamp login' first.")

    try:
        result = engine.sync_once()
    finally:
        engine.shutdown()

    if result is SyncResult.FAILED:
        _fail(engine.last_error or "Sync failed")
    click.echo(f"Sync: {result.value}")


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def watch(debug: bool):
    """Keep the journal in sync until interrupted."""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=logging.DEBUG if debug else logging.INFO,
    )

    config = load_config()
    engine = create_sync_engine(config)
    if engine is None:
        _fail("Sync is not configured. Run 'dailychamp login' first.")

    halted = []
    engine.add_failure_listener(halted.append)
    engine.add_change_listener(lambda: click.echo("Journal updated from server."))

    store = FileStore(config.journal_path)
    last_seen = store.last_modified()

    click.echo(f"Syncing {config.journal_path} every {engine.base_interval}s")
    click.echo("Press Ctrl+C to stop")
    engine.start()
    try:
        while engine.is_running:
            time.sleep(1)
            # Edits from other processes start the grace period too
            modified = store.last_modified()
            if modified != last_seen:
                last_seen = modified
                if modified is not None:
                    engine.note_local_write(modified)
    except KeyboardInterrupt:
        click.echo("\nSync stopped.")
    finally:
        engine.shutdown()

    if halted:
        _fail(halted[0])


@main.command("remote-ls")
@click.argument("directory", required=False)
def remote_ls(directory: str | None):
    """List markdown files in a remote directory."""
    config = load_config()
    password = Credentials.load().password
    if not config.sync_enabled or not password:
        _fail("Sync is not configured. Run 'dailychamp login' first.")

    adapter = WebDAVAdapter(
        config.nextcloud_url, config.nextcloud_username, password, config.nextcloud_path
    )
    directory = directory or dirname(adapter.file_path) or "/"
    try:
        names = adapter.list_directory(directory)
    except SyncError as e:
        _fail(str(e))

    if not names:
        click.echo(f"No markdown files in {directory}.")
        return
    for name in sorted(names):
        click.echo(name)


@main.command()
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
def export(output: Path | None):
    """Write the journal in canonical form to OUTPUT (or stdout)."""
    try:
        content = get_journal(load_config()).export_markdown()
    except LocalStorageError as e:
        _fail(str(e))

    if output is None:
        click.echo(content)
        return
    output.write_text(content + "\n" if content else "", encoding="utf-8")
    click.echo(f"Exported to {output}")


@main.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Don't ask before replacing the journal")
def import_(source: Path, yes: bool):
    """Replace the journal with the days in SOURCE."""
    content = source.read_text(encoding="utf-8")
    if not is_valid_format(content):
        _fail(f"{source} has no '# YYYY-MM-DD' day headers")

    if not yes and not click.confirm("This replaces the current journal. Continue?"):
        click.echo("Cancelled.")
        return

    try:
        count = get_journal(load_config()).import_markdown(content)
    except LocalStorageError as e:
        _fail(str(e))
    click.echo(f"Imported {count} days.")


if __name__ == "__main__":
    main()
