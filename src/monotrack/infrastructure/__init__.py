"""Change persistence backends."""

from monotrack.infrastructure.change_store import (
    ChangeStore,
    BaseChangeStore,
    MemoryChangeStore,
    FileChangeStore,
    UNRELEASED_KEY,
)
from monotrack.infrastructure.change_db import SqliteChangeStore

__all__ = [
    "ChangeStore",
    "BaseChangeStore",
    "MemoryChangeStore",
    "FileChangeStore",
    "SqliteChangeStore",
    "UNRELEASED_KEY",
]
