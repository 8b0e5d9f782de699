"""Git implementation of the VCS gateway, driving the ``git`` executable."""

import logging
import subprocess
from pathlib import Path
from typing import Iterator, List, Optional, Union

from monotrack.errors import NoRepositoryError, RefNotFoundError, VcsDegradedError
from monotrack.models import Commit, FileDelta, FileStatus

logger = logging.getLogger(__name__)

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = f"--format=%H{FIELD_SEP}%an{FIELD_SEP}%ae{FIELD_SEP}%B{RECORD_SEP}"

STATUS_CODES = {
    "A": FileStatus.ADDED,
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
    # type changes and unmerged paths are still modifications
    "T": FileStatus.MODIFIED,
    "U": FileStatus.MODIFIED,
}


def parse_name_status(output: str) -> List[FileDelta]:
    """Parse ``git diff --name-status -z`` output.

    Renames and copies carry a score (``R100``) and two paths, source first.
    """
    tokens = output.split("\0")
    deltas = []
    i = 0
    while i < len(tokens):
        code = tokens[i]
        if not code:
            i += 1
            continue
        status = STATUS_CODES.get(code[0], FileStatus.MODIFIED)
        if status in (FileStatus.RENAMED, FileStatus.COPIED):
            previous, path = tokens[i + 1], tokens[i + 2]
            deltas.append(FileDelta(path=path, status=status, previous_path=previous))
            i += 3
        else:
            deltas.append(FileDelta(path=tokens[i + 1], status=status))
            i += 2
    return deltas


def parse_log(output: str) -> List[Commit]:
    """Parse ``git log`` output produced with LOG_FORMAT."""
    commits = []
    for record in output.split(RECORD_SEP):
        record = record.lstrip("\n")
        if not record.strip():
            continue
        commit_hash, author_name, author_email, message = record.split(FIELD_SEP, 3)
        commits.append(
            Commit(
                hash=commit_hash,
                author_name=author_name,
                author_email=author_email or None,
                message=message.strip("\n"),
            )
        )
    return commits


class GitGateway:
    """Answers change-tracking queries by running git in the workspace root.

    Paths are reported relative to the workspace root even when the root is
    a subdirectory of the repository.
    """

    def __init__(self, root: Union[str, Path], git_binary: str = "git"):
        """Initialize the gateway.

        Args:
            root: Workspace root directory
            git_binary: git executable to run
        """
        self.root = Path(root)
        self.git_binary = git_binary

    def _run(self, *args: str, errors: str = "replace") -> subprocess.CompletedProcess:
        """Run git in the workspace root.

        Output is decoded as UTF-8. By default bytes that are not valid UTF-8,
        such as those of a file name in a legacy encoding, become U+FFFD; the
        directories of such a path are kept, so it is still attributed.
        """
        cmd = [self.git_binary, "-C", str(self.root), *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors=errors, check=False
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            # no git executable, or no workspace directory
            raise NoRepositoryError(self.root) from e

    def repository_present(self) -> bool:
        try:
            result = self._run("rev-parse", "--is-inside-work-tree")
        except NoRepositoryError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def _require_repository(self) -> None:
        if not self.repository_present():
            raise NoRepositoryError(self.root)

    def _require_ref(self, ref: str) -> None:
        result = self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        if result.returncode != 0:
            raise RefNotFoundError(ref)

    def files_changed_since(self, ref: str) -> Iterator[FileDelta]:
        """Files that differ between ``ref`` and the working tree.

        Untracked files that are not ignored are reported as added.
        """
        self._require_repository()
        self._require_ref(ref)

        diff = self._run("diff", "--name-status", "-z", "-M", "--relative", ref, "--")
        if diff.returncode != 0:
            raise RefNotFoundError(ref)
        deltas = parse_name_status(diff.stdout)

        untracked = self._run("ls-files", "--others", "--exclude-standard", "-z")
        if untracked.returncode == 0:
            seen = {delta.path for delta in deltas}
            for path in untracked.stdout.split("\0"):
                if path and path not in seen:
                    deltas.append(FileDelta(path=path, status=FileStatus.ADDED))
        else:
            logger.warning("Could not list untracked files: %s", untracked.stderr.strip())

        logger.debug("git reported %d changed files since %s", len(deltas), ref)
        return iter(deltas)

    def commits_since(self, from_ref: str, to_ref: Optional[str] = None) -> List[Commit]:
        """Commits reachable from ``to_ref`` (default HEAD) but not ``from_ref``.

        Raises:
            VcsDegradedError: If git fails or its log output is not valid
                UTF-8 in the expected format
        """
        self._require_repository()
        revision_range = f"{from_ref}..{to_ref or 'HEAD'}"
        try:
            # stored change descriptions must be valid UTF-8
            result = self._run("log", LOG_FORMAT, revision_range, "--", errors="strict")
        except UnicodeDecodeError as e:
            raise VcsDegradedError(f"git log {revision_range} is not valid UTF-8: {e}") from e
        if result.returncode != 0:
            raise VcsDegradedError(
                result.stderr.strip() or f"git log {revision_range} failed"
            )
        try:
            return parse_log(result.stdout)
        except ValueError as e:
            raise VcsDegradedError(f"Unexpected git log output for {revision_range}: {e}") from e
