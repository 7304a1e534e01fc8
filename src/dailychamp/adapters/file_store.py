"""File-based document storage adapter."""

import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalStorageError(Exception):
    """Raised when the local document cannot be read or written."""

    pass


class FileStore:
    """
    Single-file document storage.

    Implements LocalStore protocol. The whole journal lives in one UTF-8
    markdown file; writes replace it completely.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def read(self) -> str | None:
        """Read the document. Returns None if not found."""
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LocalStorageError(f"Failed to read {self.path}: {e}") from e

    def write(self, content: str) -> None:
        """Write/overwrite the document, creating parent directories."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise LocalStorageError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Wrote {len(content)} chars to {self.path}")

    def exists(self) -> bool:
        """Check if the document exists."""
        return self.path.exists()

    def last_modified(self) -> datetime | None:
        """File mtime as an aware UTC datetime, or None if missing."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalStorageError(f"Failed to stat {self.path}: {e}") from e
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def delete(self) -> None:
        """Remove the document if present."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise LocalStorageError(f"Failed to delete {self.path}: {e}") from e
