"""SQLite-based change storage."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from monotrack.errors import StoreError
from monotrack.infrastructure.change_store import BaseChangeStore
from monotrack.models import Change, Changeset

logger = logging.getLogger(__name__)


class SqliteChangeStore(BaseChangeStore):
    """Persists changesets and their changes in a SQLite database."""

    def __init__(self, db_path: Path):
        """Open (and create if needed) the change database.

        Args:
            db_path: Path to the SQLite file

        Raises:
            StoreError: If the database cannot be opened
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connect()
            self._create_tables()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open change database: {e}", self.db_path) from e

    def _connect(self):
        """Connect to the SQLite database."""
        self.conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.conn.execute("PRAGMA journal_mode = WAL")

    def _create_tables(self):
        """Create the change tables if they don't exist."""
        with self.conn:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS changesets (
                    id TEXT PRIMARY KEY,
                    summary TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS changes (
                    id TEXT PRIMARY KEY,
                    changeset_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    package TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    description TEXT NOT NULL,
                    breaking BOOLEAN DEFAULT FALSE,
                    author TEXT,
                    issues JSON,
                    release_version TEXT,
                    environments JSON,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    FOREIGN KEY (changeset_id) REFERENCES changesets(id) ON DELETE CASCADE
                )
            """)

            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_changes_changeset
                ON changes(changeset_id, position)
            """)

            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_changes_unreleased
                ON changes(package, release_version)
            """)

    @staticmethod
    def _timestamp(dt: Optional[datetime]) -> Optional[str]:
        return dt.isoformat() if dt else None

    @staticmethod
    def _row_to_change(row: sqlite3.Row) -> Change:
        data: Dict[str, Any] = dict(row)
        data.pop("changeset_id", None)
        data.pop("position", None)
        data["breaking"] = bool(data["breaking"])
        data["issues"] = json.loads(data["issues"]) if data.get("issues") else []
        data["environments"] = (
            json.loads(data["environments"]) if data.get("environments") else []
        )
        return Change.model_validate(data)

    def store_changeset(self, changeset: Changeset) -> None:
        """Insert or replace a changeset and all of its changes in one transaction."""
        try:
            with self.conn:
                self.conn.execute("""
                    INSERT INTO changesets (id, summary, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        summary = excluded.summary,
                        updated_at = excluded.updated_at
                """, (
                    changeset.id, changeset.summary,
                    self._timestamp(changeset.created_at),
                    self._timestamp(changeset.updated_at),
                ))

                self.conn.execute("""
                    DELETE FROM changes WHERE changeset_id = ?
                """, (changeset.id,))

                self.conn.executemany("""
                    INSERT INTO changes (
                        id, changeset_id, position, package, kind, description,
                        breaking, author, issues, release_version, environments,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [
                    (
                        change.id, changeset.id, position, change.package, change.kind,
                        change.description, change.breaking, change.author,
                        json.dumps(change.issues) if change.issues else None,
                        change.release_version,
                        json.dumps(sorted(change.environments)) if change.environments else None,
                        self._timestamp(change.created_at),
                        self._timestamp(change.updated_at),
                    )
                    for position, change in enumerate(changeset.changes)
                ])
        except sqlite3.Error as e:
            raise StoreError(f"Cannot store changeset {changeset.id}: {e}", self.db_path) from e

        logger.debug("Stored changeset %s with %d changes", changeset.id, len(changeset.changes))

    def _load_changesets(self, where: str = "", params: tuple = ()) -> List[Changeset]:
        try:
            changeset_rows = self.conn.execute(
                f"SELECT * FROM changesets {where} ORDER BY created_at, id", params
            ).fetchall()

            changesets = []
            for row in changeset_rows:
                change_rows = self.conn.execute("""
                    SELECT * FROM changes
                    WHERE changeset_id = ?
                    ORDER BY position
                """, (row["id"],)).fetchall()
                changesets.append(
                    Changeset(
                        id=row["id"],
                        summary=row["summary"],
                        created_at=datetime.fromisoformat(row["created_at"]),
                        updated_at=(
                            datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None
                        ),
                        changes=[self._row_to_change(r) for r in change_rows],
                    )
                )
            return changesets
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read changesets: {e}", self.db_path) from e

    def get_all_changesets(self) -> List[Changeset]:
        return self._load_changesets()

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]:
        found = self._load_changesets("WHERE id = ?", (changeset_id,))
        return found[0] if found else None

    def remove_changeset(self, changeset_id: str) -> bool:
        try:
            with self.conn:
                cursor = self.conn.execute("""
                    DELETE FROM changesets WHERE id = ?
                """, (changeset_id,))
        except sqlite3.Error as e:
            raise StoreError(f"Cannot remove changeset {changeset_id}: {e}", self.db_path) from e
        return cursor.rowcount > 0

    def get_unreleased_changes(self, package: str) -> List[Change]:
        """Unreleased changes of a package, read straight from the index."""
        try:
            cursor = self.conn.execute("""
                SELECT * FROM changes
                WHERE package = ? AND release_version IS NULL
                ORDER BY created_at, position
            """, (package,))
            return [self._row_to_change(row) for row in cursor]
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read changes of {package}: {e}", self.db_path) from e

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
