"""Revision-control records consumed by the change tracker."""

import posixpath
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field, field_validator
from .base import MonotrackBaseModel


class FileStatus(str, Enum):
    """How a file differs between two revisions."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


def normalize_relative_path(path: str) -> str:
    """Normalize a workspace-relative path to forward-slash form.

    Removes ``.`` and ``..`` segments and trailing separators.

    Raises:
        ValueError: If the path is empty or escapes the workspace root
    """
    cleaned = path.replace("\\", "/").strip()
    if not cleaned:
        raise ValueError("File path cannot be empty")
    if posixpath.isabs(cleaned):
        raise ValueError(f"File path '{path}' must be relative to the workspace root")
    normalized = posixpath.normpath(cleaned)
    if normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"File path '{path}' escapes the workspace root")
    if normalized in ("", "."):
        raise ValueError(f"File path '{path}' does not name a file")
    return normalized


class Commit(MonotrackBaseModel):
    """Metadata of a single commit."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    hash: str = Field(description="Commit hash")
    message: str = Field(default="", description="Raw commit message, may be multi-line")
    author_name: str = Field(default="", description="Author name")
    author_email: Optional[str] = Field(default=None, description="Author email")

    @property
    def subject(self) -> str:
        """First non-empty line of the message."""
        for line in self.message.splitlines():
            if line.strip():
                return line.strip()
        return ""


class FileDelta(MonotrackBaseModel):
    """A single changed file, relative to the workspace root."""

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True)

    path: str = Field(description="Path relative to the workspace root")
    status: FileStatus = Field(default=FileStatus.MODIFIED, description="Change status")
    previous_path: Optional[str] = Field(
        default=None, description="Source path of a rename or copy"
    )

    @field_validator("path", "previous_path")
    @classmethod
    def validate_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return normalize_relative_path(v)
