"""Durable session log consumed by the session coordinator."""

from .errors import StorageError
from .models import SessionRecord, SessionStats
from .store import SessionStore, SqliteSessionStore

__all__ = [
    "SessionRecord",
    "SessionStats",
    "SessionStore",
    "SqliteSessionStore",
    "StorageError",
]
