"""Change tracking models for monotrack."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Set
from pydantic import Field, field_serializer, field_validator, model_validator
from .base import TrackedModel
from ..utils.name_validator import validate_environment_name

MONOREPO_KEY = "monorepo"
ROOT_KEY = "root"
RESERVED_PACKAGE_KEYS = frozenset({MONOREPO_KEY, ROOT_KEY})


class ChangeKind(str, Enum):
    """Semantic intent of a change, following conventional commit types."""

    FEATURE = "feature"
    FIX = "fix"
    PERFORMANCE = "performance"
    BREAKING = "breaking"
    DOCUMENTATION = "documentation"
    TEST = "test"
    CI = "ci"
    BUILD = "build"
    REFACTOR = "refactor"
    STYLE = "style"
    REVERT = "revert"
    CHORE = "chore"


class ScopeKind(str, Enum):
    """Where in the repository a file lives."""

    PACKAGE = "package"
    MONOREPO = "monorepo"
    ROOT = "root"


@dataclass(frozen=True)
class ChangeScope:
    """Attribution target of a changed file."""

    kind: ScopeKind
    package: Optional[str] = None

    def __post_init__(self):
        if (self.kind == ScopeKind.PACKAGE) != (self.package is not None):
            raise ValueError("Only package scopes carry a package name")

    @classmethod
    def for_package(cls, name: str) -> "ChangeScope":
        return cls(ScopeKind.PACKAGE, name)

    @property
    def key(self) -> str:
        """Package key under which changes in this scope are stored."""
        if self.kind == ScopeKind.PACKAGE:
            return self.package
        if self.kind == ScopeKind.ROOT:
            return ROOT_KEY
        return MONOREPO_KEY

    def __str__(self) -> str:
        return self.key


MONOREPO_SCOPE = ChangeScope(ScopeKind.MONOREPO)
ROOT_SCOPE = ChangeScope(ScopeKind.ROOT)


class Change(TrackedModel):
    """A single attributed, classified change to one package."""

    package: str = Field(description="Package name, or 'monorepo' / 'root'")
    kind: ChangeKind = Field(default=ChangeKind.CHORE, description="Semantic intent")
    description: str = Field(description="Human readable description")
    breaking: bool = Field(default=False, description="Whether the change is breaking")
    author: Optional[str] = Field(default=None, description="Change author")
    issues: List[str] = Field(default_factory=list, description="Related issue references")
    release_version: Optional[str] = Field(
        default=None, description="Version the change was released in (None if unreleased)"
    )
    environments: Set[str] = Field(
        default_factory=set,
        description="Target environments (empty means all environments)",
    )

    @field_validator("environments")
    @classmethod
    def validate_environments(cls, v: Set[str]) -> Set[str]:
        for environment in v:
            validate_environment_name(environment)
        return v

    @model_validator(mode="after")
    def sync_breaking_flag(self) -> "Change":
        """Keep the breaking flag and the breaking kind in agreement."""
        if self.breaking:
            self.kind = ChangeKind.BREAKING.value
        elif self.kind == ChangeKind.BREAKING:
            self.breaking = True
        return self

    @field_serializer("environments")
    def serialize_environments(self, environments: Set[str], _info: Any) -> List[str]:
        return sorted(environments)

    @property
    def is_released(self) -> bool:
        return self.release_version is not None

    def applies_to_environment(self, environment: str) -> bool:
        """Check whether this change should ship to an environment.

        A change without environment restrictions applies everywhere.
        """
        if not self.environments:
            return True
        return environment in self.environments

    def mark_released(self, version: str) -> None:
        """Set the release version of an unreleased change.

        Raises:
            ValueError: If the change was already released
        """
        if self.release_version is not None:
            raise ValueError(
                f"Change {self.id} was already released in {self.release_version}"
            )
        self.release_version = version
        self.updated_at = datetime.now(timezone.utc)

    def summary(self) -> str:
        """Conventional one-line summary, e.g. ``feature!: drop legacy API``."""
        bang = "!" if self.breaking else ""
        return f"{ChangeKind(self.kind).value}{bang}: {self.description}"


class Changeset(TrackedModel):
    """An optionally summarized group of changes stored as one unit."""

    summary: Optional[str] = Field(default=None, description="Changeset summary")
    changes: List[Change] = Field(default_factory=list, description="Ordered changes")

    @property
    def packages(self) -> List[str]:
        """Package keys touched by this changeset, in first-seen order."""
        seen = []
        for change in self.changes:
            if change.package not in seen:
                seen.append(change.package)
        return seen

    def change_ids(self) -> List[str]:
        return [change.id for change in self.changes]
