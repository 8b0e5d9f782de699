"""Change store protocol and its in-memory and JSON file implementations."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from monotrack.errors import StoreError
from monotrack.models import Change, Changeset

logger = logging.getLogger(__name__)

UNRELEASED_KEY = "unreleased"


@runtime_checkable
class ChangeStore(Protocol):
    """Persistence capabilities the change tracker relies on.

    Every changeset write is atomic: after ``store_changeset`` returns, the
    whole changeset is visible to subsequent reads; if it raises, none of it
    is.
    """

    def store_changeset(self, changeset: Changeset) -> None: ...

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]: ...

    def get_all_changesets(self) -> List[Changeset]: ...

    def remove_changeset(self, changeset_id: str) -> bool: ...

    def get_all_changes_by_package(self) -> Dict[str, List[Change]]: ...

    def get_unreleased_changes(self, package: str) -> List[Change]: ...

    def get_released_changes(self, package: str) -> List[Change]: ...

    def get_changes_by_version(self, package: str) -> Dict[str, List[Change]]: ...

    def mark_changes_as_released(
        self, package: str, version: str, dry_run: bool = False
    ) -> List[Change]: ...


class BaseChangeStore:
    """Derives the query surface of a store from two primitives.

    Subclasses implement ``store_changeset``, ``get_all_changesets``,
    ``get_changeset`` and ``remove_changeset``. Everything returned is a
    copy; mutating it never changes stored state.
    """

    def store_changeset(self, changeset: Changeset) -> None:
        raise NotImplementedError

    def get_all_changesets(self) -> List[Changeset]:
        raise NotImplementedError

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]:
        for changeset in self.get_all_changesets():
            if changeset.id == changeset_id:
                return changeset
        return None

    def remove_changeset(self, changeset_id: str) -> bool:
        raise NotImplementedError

    def _check_ownership(
        self, changeset: Changeset, existing: Optional[Iterable[Changeset]] = None
    ) -> None:
        """Ensure every change of a changeset belongs to it alone.

        Raises:
            StoreError: If a change id repeats within the changeset or is
                already held by another stored changeset
        """
        seen = set()
        for change in changeset.changes:
            if change.id in seen:
                raise StoreError(f"Change {change.id} appears twice in changeset {changeset.id}")
            seen.add(change.id)

        if existing is None:
            existing = self.get_all_changesets()
        for other in existing:
            if other.id == changeset.id:
                continue
            for change in other.changes:
                if change.id in seen:
                    raise StoreError(
                        f"Change {change.id} already belongs to changeset {other.id}"
                    )

    def _iter_changes(self, package: str):
        for changeset in self.get_all_changesets():
            for change in changeset.changes:
                if change.package == package:
                    yield change

    def get_all_changes_by_package(self) -> Dict[str, List[Change]]:
        result: Dict[str, List[Change]] = {}
        for changeset in self.get_all_changesets():
            for change in changeset.changes:
                result.setdefault(change.package, []).append(change)
        return result

    def get_unreleased_changes(self, package: str) -> List[Change]:
        return [c for c in self._iter_changes(package) if c.release_version is None]

    def get_released_changes(self, package: str) -> List[Change]:
        return [c for c in self._iter_changes(package) if c.release_version is not None]

    def get_changes_by_version(self, package: str) -> Dict[str, List[Change]]:
        """Group a package's changes by release version.

        Unreleased changes are grouped under ``"unreleased"``.
        """
        result: Dict[str, List[Change]] = {}
        for change in self._iter_changes(package):
            key = change.release_version or UNRELEASED_KEY
            result.setdefault(key, []).append(change)
        return result

    def mark_changes_as_released(
        self, package: str, version: str, dry_run: bool = False
    ) -> List[Change]:
        """Set the release version of every unreleased change of a package.

        Args:
            package: Package key
            version: Release version
            dry_run: Compute the result without writing anything

        Returns:
            The changes that were (or would be) released
        """
        updated_changes: List[Change] = []
        updated_changesets: List[Changeset] = []

        for changeset in self.get_all_changesets():
            has_updates = False
            for change in changeset.changes:
                if change.package == package and change.release_version is None:
                    change.mark_released(version)
                    updated_changes.append(change)
                    has_updates = True
            if has_updates:
                updated_changesets.append(changeset)

        if not dry_run:
            for changeset in updated_changesets:
                self.store_changeset(changeset)

        return updated_changes


class MemoryChangeStore(BaseChangeStore):
    """Change store kept in process memory."""

    def __init__(self):
        self._changesets: Dict[str, Changeset] = {}

    def store_changeset(self, changeset: Changeset) -> None:
        self._check_ownership(changeset, self._changesets.values())
        self._changesets[changeset.id] = changeset.model_copy(deep=True)

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]:
        changeset = self._changesets.get(changeset_id)
        return changeset.model_copy(deep=True) if changeset else None

    def get_all_changesets(self) -> List[Changeset]:
        return [cs.model_copy(deep=True) for cs in self._changesets.values()]

    def remove_changeset(self, changeset_id: str) -> bool:
        return self._changesets.pop(changeset_id, None) is not None

    def __len__(self) -> int:
        return len(self._changesets)


class FileChangeStore(BaseChangeStore):
    """Stores each changeset as a pretty-printed ``<id>.json`` file."""

    def __init__(self, changeset_dir: Path):
        """Initialize the store, creating its directory if needed.

        Args:
            changeset_dir: Directory holding the changeset files

        Raises:
            StoreError: If the directory cannot be created
        """
        self.changeset_dir = Path(changeset_dir)
        try:
            self.changeset_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create changeset directory: {e}", self.changeset_dir) from e

    def _path_for(self, changeset_id: str) -> Path:
        return self.changeset_dir / f"{changeset_id}.json"

    def _load(self, path: Path) -> Changeset:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Changeset.model_validate(data)
        except OSError as e:
            raise StoreError(f"Cannot read changeset: {e}", path) from e
        except (ValueError, ValidationError) as e:
            raise StoreError(f"Invalid changeset file: {e}", path) from e

    def store_changeset(self, changeset: Changeset) -> None:
        """Write a changeset atomically.

        The JSON is written to a temporary file in the same directory and
        moved over the target, so readers see the old or the new file, never
        a partial one.

        Raises:
            StoreError: If a change already belongs to another changeset or
                the file cannot be written
        """
        self._check_ownership(changeset)
        path = self._path_for(changeset.id)
        payload = json.dumps(changeset.model_dump(mode="json"), indent=2, sort_keys=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.changeset_dir, prefix=f".{changeset.id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise StoreError(f"Cannot write changeset: {e}", path) from e

        logger.debug("Stored changeset %s with %d changes", changeset.id, len(changeset.changes))

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]:
        path = self._path_for(changeset_id)
        if not path.is_file():
            return None
        return self._load(path)

    def get_all_changesets(self) -> List[Changeset]:
        try:
            paths = sorted(self.changeset_dir.glob("*.json"))
        except OSError as e:
            raise StoreError(f"Cannot list changesets: {e}", self.changeset_dir) from e
        return [self._load(path) for path in paths if path.is_file()]

    def remove_changeset(self, changeset_id: str) -> bool:
        path = self._path_for(changeset_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError(f"Cannot remove changeset: {e}", path) from e
        return True
