"""Core data models for monotrack."""

from .base import MonotrackBaseModel, TrackedModel, new_id
from .change import (
    Change,
    ChangeKind,
    ChangeScope,
    Changeset,
    ScopeKind,
    MONOREPO_KEY,
    ROOT_KEY,
    RESERVED_PACKAGE_KEYS,
    MONOREPO_SCOPE,
    ROOT_SCOPE,
)
from .vcs import Commit, FileDelta, FileStatus, normalize_relative_path
from .workspace import Package

__all__ = [
    "MonotrackBaseModel",
    "TrackedModel",
    "new_id",
    "Change",
    "ChangeKind",
    "ChangeScope",
    "Changeset",
    "ScopeKind",
    "MONOREPO_KEY",
    "ROOT_KEY",
    "RESERVED_PACKAGE_KEYS",
    "MONOREPO_SCOPE",
    "ROOT_SCOPE",
    "Commit",
    "FileDelta",
    "FileStatus",
    "normalize_relative_path",
    "Package",
]
