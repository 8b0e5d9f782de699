"""Tests for the change store backends."""

import json
import os
from unittest.mock import patch

import pytest

from monotrack.errors import StoreError
from monotrack.infrastructure import (
    ChangeStore,
    FileChangeStore,
    MemoryChangeStore,
    SqliteChangeStore,
)
from monotrack.models import Change, ChangeKind, Changeset


@pytest.fixture(params=["memory", "file", "sqlite"])
def store(request, temp_dir):
    """Each store backend, empty."""
    if request.param == "memory":
        yield MemoryChangeStore()
    elif request.param == "file":
        yield FileChangeStore(temp_dir / ".changes")
    else:
        db = SqliteChangeStore(temp_dir / "changes.db")
        yield db
        db.close()


def make_changeset(*packages, summary=None):
    return Changeset(
        summary=summary,
        changes=[Change(package=p, description=f"change in {p}") for p in packages],
    )


class TestChangeStoreContract:
    """Behavior shared by every backend."""

    def test_satisfies_protocol(self, store):
        """Test the backend implements the ChangeStore protocol."""
        assert isinstance(store, ChangeStore)

    def test_empty(self, store):
        """Test an empty store answers every query with nothing."""
        assert store.get_all_changesets() == []
        assert store.get_all_changes_by_package() == {}
        assert store.get_unreleased_changes("a") == []

    def test_store_and_read_back(self, store):
        """Test a stored changeset comes back with the same changes."""
        changeset = make_changeset("a", "b", summary="Release prep")
        changeset.changes[0].environments = {"prod"}
        changeset.changes[1].kind = ChangeKind.FIX.value
        store.store_changeset(changeset)

        stored = store.get_all_changesets()
        assert len(stored) == 1
        assert stored[0].id == changeset.id
        assert stored[0].summary == "Release prep"
        assert stored[0].change_ids() == changeset.change_ids()
        assert stored[0].changes[0].environments == {"prod"}
        assert stored[0].changes[1].kind == ChangeKind.FIX

    def test_get_changeset(self, store):
        """Test lookup of a changeset by id."""
        changeset = make_changeset("a")
        store.store_changeset(changeset)

        assert store.get_changeset(changeset.id).id == changeset.id
        assert store.get_changeset("missing") is None

    def test_overwrite_changeset(self, store):
        """Test storing a changeset again replaces its changes."""
        changeset = make_changeset("a", "a")
        store.store_changeset(changeset)

        changeset.changes = changeset.changes[:1]
        changeset.summary = "trimmed"
        store.store_changeset(changeset)

        stored = store.get_all_changesets()
        assert len(stored) == 1
        assert len(stored[0].changes) == 1
        assert stored[0].summary == "trimmed"

    def test_remove_changeset(self, store):
        """Test removal reports whether the changeset existed."""
        changeset = make_changeset("a")
        store.store_changeset(changeset)

        assert store.remove_changeset(changeset.id) is True
        assert store.remove_changeset(changeset.id) is False
        assert store.get_all_changesets() == []

    def test_changes_by_package(self, store):
        """Test changes are grouped by package across changesets."""
        store.store_changeset(make_changeset("a", "b"))
        store.store_changeset(make_changeset("a", "monorepo"))

        by_package = store.get_all_changes_by_package()
        assert sorted(by_package) == ["a", "b", "monorepo"]
        assert len(by_package["a"]) == 2

    def test_returned_changes_are_copies(self, store):
        """Test mutating a returned change does not touch the store."""
        store.store_changeset(make_changeset("a"))

        store.get_all_changesets()[0].changes[0].release_version = "9.9.9"
        assert len(store.get_unreleased_changes("a")) == 1

    def test_mark_changes_as_released(self, store):
        """Test releasing one package leaves the others unreleased."""
        store.store_changeset(make_changeset("a", "b"))
        store.store_changeset(make_changeset("a"))

        released = store.mark_changes_as_released("a", "1.0.0")

        assert len(released) == 2
        assert all(c.release_version == "1.0.0" for c in released)
        assert store.get_unreleased_changes("a") == []
        assert len(store.get_unreleased_changes("b")) == 1
        assert len(store.get_released_changes("a")) == 2

    def test_mark_released_is_idempotent(self, store):
        """Test a second release of the same package releases nothing."""
        store.store_changeset(make_changeset("a", "a"))

        first = store.mark_changes_as_released("a", "1.0.0")
        second = store.mark_changes_as_released("a", "1.0.0")

        assert len(first) == 2
        assert second == []

    def test_mark_released_dry_run(self, store):
        """Test a dry run reports the release without storing it."""
        store.store_changeset(make_changeset("a", "a", "a"))

        released = store.mark_changes_as_released("a", "2.0.0", dry_run=True)

        assert len(released) == 3
        assert all(c.release_version == "2.0.0" for c in released)
        assert len(store.get_unreleased_changes("a")) == 3

    def test_changes_by_version(self, store):
        """Test changes are grouped by version with unreleased ones apart."""
        store.store_changeset(make_changeset("a"))
        store.mark_changes_as_released("a", "1.0.0")
        store.store_changeset(make_changeset("a", "a"))

        by_version = store.get_changes_by_version("a")
        assert sorted(by_version) == ["1.0.0", "unreleased"]
        assert len(by_version["1.0.0"]) == 1
        assert len(by_version["unreleased"]) == 2

    def test_change_owned_by_other_changeset(self, store):
        """Test a change id can belong to one changeset only."""
        first = make_changeset("a")
        store.store_changeset(first)

        second = Changeset(changes=[first.changes[0]])
        with pytest.raises(StoreError):
            store.store_changeset(second)

        assert [cs.id for cs in store.get_all_changesets()] == [first.id]
        assert len(store.get_unreleased_changes("a")) == 1

    def test_change_repeated_within_changeset(self, store):
        """Test a changeset cannot hold the same change twice."""
        change = Change(package="a", description="once")

        with pytest.raises(StoreError):
            store.store_changeset(Changeset(changes=[change, change]))
        assert store.get_all_changesets() == []


class TestFileChangeStore:
    """Test the JSON file backend."""

    def test_file_layout(self, temp_dir):
        """Test each changeset is one sorted JSON file named by id."""
        store = FileChangeStore(temp_dir / ".changes")
        changeset = make_changeset("a")
        store.store_changeset(changeset)

        path = temp_dir / ".changes" / f"{changeset.id}.json"
        data = json.loads(path.read_text())
        assert data["id"] == changeset.id
        assert data["changes"][0]["package"] == "a"
        assert list(data) == sorted(data)

    def test_failed_write_keeps_previous_file(self, temp_dir):
        """Test a failing replace leaves the old changeset and no temp file."""
        store = FileChangeStore(temp_dir / ".changes")
        changeset = make_changeset("a")
        store.store_changeset(changeset)
        path = temp_dir / ".changes" / f"{changeset.id}.json"
        before = path.read_bytes()

        changeset.summary = "new"
        with patch("monotrack.infrastructure.change_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreError, match="Cannot write changeset"):
                store.store_changeset(changeset)

        assert path.read_bytes() == before
        assert os.listdir(temp_dir / ".changes") == [path.name]

    def test_invalid_file(self, temp_dir):
        """Test a corrupt changeset file raises StoreError."""
        store = FileChangeStore(temp_dir / ".changes")
        (temp_dir / ".changes" / "broken.json").write_text("{not json")

        with pytest.raises(StoreError, match="Invalid changeset file"):
            store.get_all_changesets()

    def test_dry_run_leaves_bytes_unchanged(self, temp_dir):
        """Test a dry run does not touch the files."""
        store = FileChangeStore(temp_dir / ".changes")
        store.store_changeset(make_changeset("a", "a"))
        snapshot = {p.name: p.read_bytes() for p in (temp_dir / ".changes").iterdir()}

        store.mark_changes_as_released("a", "1.0.0", dry_run=True)

        assert {p.name: p.read_bytes() for p in (temp_dir / ".changes").iterdir()} == snapshot

    def test_unwritable_directory(self, temp_dir):
        """Test an unusable store directory raises StoreError."""
        (temp_dir / "blocker").write_text("a file, not a directory")
        with pytest.raises(StoreError):
            FileChangeStore(temp_dir / "blocker" / ".changes")


class TestSqliteChangeStore:
    """Test the SQLite backend."""

    def test_persists_across_connections(self, temp_dir):
        """Test changesets survive reopening the database."""
        db_path = temp_dir / "changes.db"
        changeset = make_changeset("a", "b")
        with SqliteChangeStore(db_path) as store:
            store.store_changeset(changeset)

        with SqliteChangeStore(db_path) as store:
            stored = store.get_changeset(changeset.id)

        assert stored.change_ids() == changeset.change_ids()

    def test_failed_write_is_rolled_back(self, temp_dir):
        """Test a changeset write fails as a whole."""
        with SqliteChangeStore(temp_dir / "changes.db") as store:
            first = make_changeset("a")
            store.store_changeset(first)

            # second changeset reuses a change id owned by the first
            second = Changeset(changes=[Change(package="b", description="new"), first.changes[0]])
            with pytest.raises(StoreError):
                store.store_changeset(second)

            assert store.get_changeset(second.id) is None
            assert [cs.id for cs in store.get_all_changesets()] == [first.id]
