"""Remote file store interface."""

from datetime import datetime
from typing import Protocol


class RemoteStore(Protocol):
    """Interface for the remote copy of the document, over a file-HTTP protocol."""

    def download(self) -> str | None:
        """Fetch the document. Returns None if it does not exist remotely."""
        ...

    def upload(self, content: str) -> None:
        """Create or overwrite the document."""
        ...

    def exists(self) -> bool:
        """Check if the document exists remotely."""
        ...

    def get_last_modified(self) -> datetime | None:
        """Remote modification time (timezone-aware), or None if unknown."""
        ...

    def list_directory(self, dir_path: str) -> list[str]:
        """List markdown file names directly inside a remote directory."""
        ...

    def make_directory(self, dir_path: str) -> bool:
        """Create one remote directory. True if it now exists."""
        ...
