"""Commit message classification.

Reads conventional-commit style messages and decides the kind of change a
group of commits represents. Breaking markers win over everything else;
otherwise the most significant recognized prefix across all commits wins.
"""

import logging
import re
from typing import List, Sequence, Tuple

from monotrack.models import ChangeKind, Commit

logger = logging.getLogger(__name__)

BREAKING_PATTERN = re.compile(r"breaking change|\bbreaking\b|\bmajor\b|!:|!\)", re.IGNORECASE)

# Highest priority first
KIND_PRIORITY: List[Tuple[ChangeKind, Tuple[str, ...]]] = [
    (ChangeKind.FEATURE, ("feat", "feature")),
    (ChangeKind.FIX, ("fix",)),
    (ChangeKind.PERFORMANCE, ("perf", "performance")),
    (ChangeKind.DOCUMENTATION, ("docs", "documentation")),
    (ChangeKind.TEST, ("test",)),
    (ChangeKind.CI, ("ci",)),
    (ChangeKind.BUILD, ("build",)),
    (ChangeKind.REFACTOR, ("refactor",)),
    (ChangeKind.STYLE, ("style",)),
    (ChangeKind.REVERT, ("revert",)),
]


def _prefix_pattern(tokens: Tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(tokens)
    # leading token ("fix typo", "feat(ui): ...") or a "token:" anywhere
    return re.compile(
        rf"^\s*(?:{alternatives})\b|\b(?:{alternatives})(?:\([^)\n]*\))?:",
        re.IGNORECASE,
    )


KIND_PATTERNS = [(kind, _prefix_pattern(tokens)) for kind, tokens in KIND_PRIORITY]


def is_breaking_message(message: str) -> bool:
    return bool(BREAKING_PATTERN.search(message))


def kind_of_message(message: str) -> ChangeKind:
    """Most significant conventional kind named by one message."""
    for kind, pattern in KIND_PATTERNS:
        if pattern.search(message):
            return kind
    return ChangeKind.CHORE


def classify_commits(commits: Sequence[Commit]) -> Tuple[ChangeKind, bool]:
    """Determine the kind of change a list of commits represents.

    Args:
        commits: Commits, newest first

    Returns:
        Tuple of (kind, breaking)
    """
    if not commits:
        logger.debug("No commits provided, defaulting to chore")
        return ChangeKind.CHORE, False

    for commit in commits:
        if is_breaking_message(commit.message):
            logger.debug("Breaking marker found in commit %s", commit.hash)
            return ChangeKind.BREAKING, True

    found = {kind_of_message(commit.message) for commit in commits}
    for kind, _ in KIND_PRIORITY:
        if kind in found:
            logger.debug("Classified %d commits as %s", len(commits), kind.value)
            return kind, False

    return ChangeKind.CHORE, False


def describe_changes(commits: Sequence[Commit], file_count: int) -> str:
    """Build a change description from the newest commit.

    Args:
        commits: Commits, newest first
        file_count: Number of files in the change

    Returns:
        The newest commit's subject, noting how many more commits contributed,
        or a file count when there is no usable commit text
    """
    subject = commits[0].subject if commits else ""
    if not subject:
        return f"Changes detected ({file_count} files)"
    if len(commits) == 1:
        return subject
    return f"{subject} (and {len(commits) - 1} more commits)"


class ChangeClassifier:
    """Injectable wrapper around the classification functions."""

    def classify(self, commits: Sequence[Commit]) -> Tuple[ChangeKind, bool]:
        return classify_commits(commits)

    def describe(self, commits: Sequence[Commit], file_count: int) -> str:
        return describe_changes(commits, file_count)
