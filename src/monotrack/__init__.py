"""monotrack - change tracking for monorepo packages."""

from monotrack.core.initializer import init_workspace
from monotrack.core.session import open_tracker
from monotrack.core.workspace import WorkspaceView
from monotrack.managers.change_tracker import ChangeTracker
from monotrack.models import Change, ChangeKind, ChangeScope, Changeset
from monotrack.errors import (
    ChangeError,
    NoChangesFoundError,
    NoRepositoryError,
    RefNotFoundError,
    StoreError,
    UnknownPackageError,
)

try:
    from importlib.metadata import version
    __version__ = version("monotrack")
except Exception:
    # Package metadata is not available when running from a source tree
    __version__ = "0.1.0"

__all__ = [
    "init_workspace",
    "open_tracker",
    "WorkspaceView",
    "ChangeTracker",
    "Change",
    "ChangeKind",
    "ChangeScope",
    "Changeset",
    "ChangeError",
    "NoChangesFoundError",
    "NoRepositoryError",
    "RefNotFoundError",
    "StoreError",
    "UnknownPackageError",
]
