"""Local document storage interface."""

from datetime import datetime
from typing import Protocol


class LocalStore(Protocol):
    """Interface for the single local markdown document."""

    def read(self) -> str | None:
        """Read the document. Returns None if it does not exist."""
        ...

    def write(self, content: str) -> None:
        """Write/overwrite the whole document."""
        ...

    def exists(self) -> bool:
        """Check if the document exists."""
        ...

    def last_modified(self) -> datetime | None:
        """Modification time (timezone-aware), or None if missing."""
        ...

    def delete(self) -> None:
        """Remove the document if present."""
        ...
