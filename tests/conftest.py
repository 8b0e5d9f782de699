"""Pytest configuration and shared fixtures."""

import json
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from monotrack.errors import NoRepositoryError, RefNotFoundError
from monotrack.models import Commit, FileDelta


class FakeVcsGateway:
    """In-memory VCS gateway serving fixed deltas and commits."""

    def __init__(
        self,
        files: Optional[Iterable] = None,
        commits: Optional[List[Commit]] = None,
        refs: Iterable[str] = ("HEAD", "main", "v1.0.0"),
        present: bool = True,
    ):
        self.files = [
            f if isinstance(f, FileDelta) else FileDelta(path=f) for f in (files or [])
        ]
        self.commits = list(commits or [])
        self.refs = set(refs)
        self.present = present
        self.calls: List[tuple] = []

    def repository_present(self) -> bool:
        return self.present

    def files_changed_since(self, ref: str):
        self.calls.append(("files_changed_since", ref))
        if not self.present:
            raise NoRepositoryError()
        if ref not in self.refs:
            raise RefNotFoundError(ref)
        return iter(self.files)

    def commits_since(self, from_ref: str, to_ref: Optional[str] = None) -> List[Commit]:
        self.calls.append(("commits_since", from_ref, to_ref))
        return list(self.commits)


def make_commit(message: str, author: str = "Alice", commit_hash: Optional[str] = None) -> Commit:
    return Commit(
        hash=commit_hash or uuid.uuid4().hex,
        message=message,
        author_name=author,
        author_email=f"{author.lower()}@example.com",
    )


def write_package(root: Path, relative_dir: str, name: str, version: str = "1.0.0") -> Path:
    """Create a package directory with a package.json manifest."""
    directory = root / relative_dir
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name, "version": version}))
    return directory


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp)


@pytest.fixture
def workspace_root(temp_dir):
    """Workspace with packages/a, packages/b and packages/a/nested on disk."""
    write_package(temp_dir, "packages/a", "@acme/a")
    write_package(temp_dir, "packages/b", "@acme/b", "2.1.0")
    write_package(temp_dir, "packages/a/nested", "@acme/nested", "0.1.0")
    return temp_dir


@pytest.fixture
def package_paths() -> Dict[str, str]:
    return {
        "@acme/a": "packages/a",
        "@acme/b": "packages/b",
        "@acme/nested": "packages/a/nested",
    }


@pytest.fixture
def commit_factory():
    """Build commits with a generated hash and author email."""
    return make_commit


@pytest.fixture
def package_writer():
    """Create package directories with a package.json manifest."""
    return write_package


@pytest.fixture
def vcs_factory():
    """Build in-memory VCS gateways."""
    return FakeVcsGateway
