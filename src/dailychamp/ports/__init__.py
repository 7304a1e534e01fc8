"""Ports - interfaces/protocols for external dependencies."""

from .local_store import LocalStore
from .remote_store import RemoteStore

__all__ = [
    "LocalStore",
    "RemoteStore",
]
