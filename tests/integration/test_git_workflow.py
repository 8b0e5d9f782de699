"""End-to-end change tracking against a real git repository."""

import json
import os
import shutil
import subprocess

import pytest

from monotrack import init_workspace, open_tracker
from monotrack.errors import NoChangesFoundError, NoRepositoryError, RefNotFoundError
from monotrack.models import ChangeKind, FileStatus
from monotrack.vcs import GitGateway

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(repo, *args):
    subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        text=True,
    )


def commit_all(repo, message):
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)


class TestGitWorkflow:
    """Test the full detect, record, release workflow."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("MONOTRACK_WORKSPACE_DIR", "MONOTRACK_GIT_USER_NAME", "MONOTRACK_STORE_BACKEND"):
            monkeypatch.delenv(name, raising=False)

    @pytest.fixture
    def repo(self, workspace_root):
        """Git repository holding a monotrack workspace, tagged v1.0.0."""
        git(workspace_root, "init", "-q")
        git(workspace_root, "config", "user.name", "Alice")
        git(workspace_root, "config", "user.email", "alice@example.com")
        git(workspace_root, "config", "commit.gpgsign", "false")

        init_workspace(workspace_root, packages=["packages/*", "packages/*/nested"])
        (workspace_root / "README.md").write_text("# acme\n")
        (workspace_root / ".gitignore").write_text("")
        commit_all(workspace_root, "chore: initial import")
        git(workspace_root, "tag", "v1.0.0")
        return workspace_root

    def test_detect_record_release(self, repo):
        """Test detected changes are recorded and released per package."""
        (repo / "packages" / "a" / "index.js").write_text("export const a = 1;\n")
        (repo / "packages" / "b" / "index.js").write_text("export const b = 2;\n")
        (repo / "README.md").write_text("# acme monorepo\n")
        commit_all(repo, "feat: add entry points")

        tracker = open_tracker(repo)
        changes = tracker.detect_between("v1.0.0")

        by_package = {c.package: c for c in changes}
        assert set(by_package) == {"@acme/a", "@acme/b", "root"}
        assert by_package["@acme/a"].kind == ChangeKind.FEATURE
        assert by_package["@acme/a"].description == "feat: add entry points"
        assert by_package["@acme/a"].author == "Alice"

        tracker.create_changeset("Entry points", changes)
        released = tracker.mark_released("@acme/a", "1.1.0")

        assert len(released) == 1
        assert set(open_tracker(repo).unreleased_changes()) == {"@acme/b", "root"}

    def test_working_tree_and_untracked_files(self, repo):
        """Test uncommitted and untracked files count as changed."""
        (repo / "packages" / "a" / "nested" / "new.ts").write_text("x")
        (repo / "packages" / "b" / "package.json").write_text(
            json.dumps({"name": "@acme/b", "version": "2.2.0"})
        )

        gateway = GitGateway(repo)
        deltas = {d.path: d.status for d in gateway.files_changed_since("HEAD")}
        assert deltas["packages/a/nested/new.ts"] == FileStatus.ADDED
        assert deltas["packages/b/package.json"] == FileStatus.MODIFIED

        changes = open_tracker(repo).detect_between("HEAD")
        assert {c.package for c in changes} == {"@acme/nested", "@acme/b"}
        # no commits in HEAD..HEAD
        assert all(c.kind == ChangeKind.CHORE for c in changes)

    def test_breaking_commit(self, repo):
        """Test a breaking commit anywhere in the range marks the change breaking."""
        (repo / "packages" / "a" / "api.js").write_text("x")
        commit_all(repo, "feat: new api")
        (repo / "packages" / "a" / "api.js").write_text("y")
        commit_all(repo, "refactor!: drop the old api")

        changes = open_tracker(repo).detect_between("v1.0.0")
        assert len(changes) == 1
        assert changes[0].kind == ChangeKind.BREAKING
        assert changes[0].breaking is True
        assert changes[0].description == "refactor!: drop the old api (and 1 more commits)"

    def test_renamed_file(self, repo):
        """Test git renames are reported with their source path."""
        (repo / "packages" / "a" / "util.js").write_text("const shared = 'content that git can match';\n" * 5)
        commit_all(repo, "feat: util")
        git(repo, "tag", "v1.1.0")
        git(repo, "mv", "packages/a/util.js", "packages/b/util.js")
        commit_all(repo, "refactor: move util")

        deltas = list(GitGateway(repo).files_changed_since("v1.1.0"))
        assert len(deltas) == 1
        assert deltas[0].status == FileStatus.RENAMED
        assert deltas[0].previous_path == "packages/a/util.js"
        assert deltas[0].path == "packages/b/util.js"

    def test_no_changes(self, repo):
        """Test an unchanged workspace raises NoChangesFoundError."""
        with pytest.raises(NoChangesFoundError):
            open_tracker(repo).detect_between("HEAD")

    def test_unknown_ref(self, repo):
        """Test an unknown tag raises RefNotFoundError."""
        with pytest.raises(RefNotFoundError):
            open_tracker(repo).detect_between("v9.9.9")

    def test_not_a_repository(self, workspace_root):
        """Test a workspace outside git raises NoRepositoryError."""
        init_workspace(workspace_root)
        gateway = GitGateway(workspace_root)

        if gateway.repository_present():
            pytest.skip("temporary directory is inside a git repository")
        with pytest.raises(NoRepositoryError):
            open_tracker(workspace_root).detect_between("HEAD")

    def test_non_utf8_file_name(self, repo):
        """Test a file name in a legacy encoding is still attributed to its package."""
        raw_path = os.path.join(os.fsencode(str(repo)), b"packages", b"a", b"bad\xff.txt")
        try:
            with open(raw_path, "wb") as f:
                f.write(b"x")
        except OSError:
            pytest.skip("filesystem does not accept non UTF-8 file names")
        commit_all(repo, "chore: add legacy file")

        deltas = list(GitGateway(repo).files_changed_since("v1.0.0"))
        assert [d.path for d in deltas] == ["packages/a/bad\ufffd.txt"]

        changes = open_tracker(repo).detect_between("v1.0.0")
        assert [c.package for c in changes] == ["@acme/a"]
        assert changes[0].kind == ChangeKind.CHORE
