"""Errors raised at the change tracking boundary."""

from pathlib import Path
from typing import Optional, Union


class ChangeError(Exception):
    """Base class for change tracking failures."""

    pass


class NoRepositoryError(ChangeError):
    """Raised when the workspace is not backed by a repository."""

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = root
        where = f" at {root}" if root else ""
        super().__init__(f"No git repository found{where}")


class RefNotFoundError(ChangeError):
    """Raised when a revision identifier cannot be resolved."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Reference '{ref}' not found in repository")


class NoChangesFoundError(ChangeError):
    """Raised when the repository reports no changed files."""

    def __init__(self, from_ref: Optional[str] = None):
        self.from_ref = from_ref
        since = f" since '{from_ref}'" if from_ref else ""
        super().__init__(f"No changes found{since}")


class UnknownPackageError(ChangeError):
    """Raised when a change references a package outside the workspace."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package '{name}' not found in workspace")


class VcsDegradedError(ChangeError):
    """Raised by a gateway when commit metadata cannot be listed."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Commit history unavailable: {detail}")


class StoreError(ChangeError):
    """Raised when a change store cannot read or write its data."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = path
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)


class ReservedPackageNameError(ValueError):
    """Raised when a workspace declares a package with a reserved key."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Package name '{name}' is reserved for monorepo-level changes"
        )


__all__ = [
    "ChangeError",
    "NoRepositoryError",
    "RefNotFoundError",
    "NoChangesFoundError",
    "UnknownPackageError",
    "VcsDegradedError",
    "StoreError",
    "ReservedPackageNameError",
]
