"""Adapters - I/O implementations of ports."""

from .file_store import FileStore, LocalStorageError
from .webdav import (
    WebDAVAdapter,
    SyncError,
    AuthenticationError,
    RateLimitError,
    NetworkError,
)

__all__ = [
    "FileStore",
    "LocalStorageError",
    "WebDAVAdapter",
    "SyncError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
]
