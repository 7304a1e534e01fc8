"""Journal service shared by the CLI and the sync loop.

Reads and writes go through a LocalStore; every write is reported to the
sync engine so the next cycle waits out the grace period.
"""

import logging
from datetime import date

from .adapters.file_store import FileStore
from .config import Config, Credentials
from .core import DailyEntry, parse, write
from .ports import LocalStore
from .sync import SyncEngine

logger = logging.getLogger(__name__)


class DailyJournal:
    """The whole journal, one markdown document, one DailyEntry per day."""

    def __init__(self, store: LocalStore, sync_engine: SyncEngine | None = None):
        self.store = store
        self.sync_engine = sync_engine

    def read_entries(self) -> list[DailyEntry]:
        content = self.store.read()
        if content is None or not content.strip():
            return []
        return parse(content)

    def write_entries(self, entries: list[DailyEntry]) -> None:
        """Rewrite the whole document from entries."""
        self.store.write(write(entries))
        if self.sync_engine is not None:
            self.sync_engine.note_local_write()

    def read_day(self, day: date) -> DailyEntry | None:
        for entry in self.read_entries():
            if entry.date == day:
                return entry
        return None

    def write_day(self, entry: DailyEntry) -> None:
        """Replace the entry for entry.date, or add it."""
        entries = self.read_entries()
        for i, existing in enumerate(entries):
            if existing.date == entry.date:
                entries[i] = entry
                break
        else:
            entries.append(entry)
        self.write_entries(entries)

    def delete_day(self, day: date) -> bool:
        """Remove every entry for day. Returns False if there was none."""
        entries = self.read_entries()
        remaining = [e for e in entries if e.date != day]
        if len(remaining) == len(entries):
            return False
        self.write_entries(remaining)
        return True

    def entries_for_month(self, year: int, month: int) -> list[DailyEntry]:
        return [
            e for e in self.read_entries() if e.date.year == year and e.date.month == month
        ]

    def entries_in_range(self, start: date, end: date) -> list[DailyEntry]:
        """Entries with start <= date <= end."""
        return [e for e in self.read_entries() if start <= e.date <= end]

    def export_markdown(self) -> str:
        """The journal in canonical form."""
        return write(self.read_entries())

    def import_markdown(self, content: str) -> int:
        """Replace the journal with the entries parsed from content."""
        entries = parse(content)
        self.write_entries(entries)
        logger.info(f"Imported {len(entries)} entries")
        return len(entries)

    def clear_all(self) -> None:
        self.store.delete()


def get_journal(config: Config, sync_engine: SyncEngine | None = None) -> DailyJournal:
    """Resolve the journal file from config."""
    return DailyJournal(FileStore(config.journal_path), sync_engine)


def create_sync_engine(
    config: Config, credentials: Credentials | None = None, **kwargs
) -> SyncEngine | None:
    """Build a configured engine for the journal, or None if sync is not set up."""
    if not config.sync_enabled:
        return None
    credentials = credentials or Credentials.load()
    if not credentials.password:
        logger.warning("Nextcloud password not set. Run 'dailychamp login' first.")
        return None

    engine = SyncEngine(
        FileStore(config.journal_path),
        base_interval=config.sync_interval,
        grace_period=config.sync_grace_period,
        **kwargs,
    )
    engine.configure(
        server_url=config.nextcloud_url,
        username=config.nextcloud_username,
        password=credentials.password,
        remote_path=config.nextcloud_path,
    )
    return engine
