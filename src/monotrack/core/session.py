"""Open a ready-to-use change tracker for a workspace."""

import logging
import os
from pathlib import Path
from typing import Optional

from monotrack.config import Config, ProjectConfig
from monotrack.core.path_utils import find_workspace_root, get_store_path
from monotrack.core.workspace import WorkspaceView
from monotrack.infrastructure.change_db import SqliteChangeStore
from monotrack.infrastructure.change_store import (
    ChangeStore,
    FileChangeStore,
    MemoryChangeStore,
)
from monotrack.managers.change_tracker import ChangeTracker
from monotrack.vcs.gateway import VcsGateway
from monotrack.vcs.git import GitGateway

logger = logging.getLogger(__name__)


def build_store(workspace_dir: Path, config: ProjectConfig) -> ChangeStore:
    """Create the change store configured for a workspace."""
    backend = config.store.backend
    if backend == "memory":
        return MemoryChangeStore()

    location = get_store_path(workspace_dir, config.store.path)
    if backend == "sqlite":
        return SqliteChangeStore(location)
    return FileChangeStore(location)


def open_tracker(
    workspace_dir: Optional[Path] = None,
    store: Optional[ChangeStore] = None,
    vcs: Optional[VcsGateway] = None,
) -> ChangeTracker:
    """Open a change tracker for an initialized workspace.

    Args:
        workspace_dir: Workspace root. If None, uses MONOTRACK_WORKSPACE_DIR
            or the nearest directory above the current one holding .monotrack
        store: Store to use instead of the configured one
        vcs: Gateway to use instead of git

    Returns:
        ChangeTracker bound to the workspace

    Raises:
        FileNotFoundError: If no workspace configuration can be found
    """
    if workspace_dir is None and not os.environ.get("MONOTRACK_WORKSPACE_DIR"):
        workspace_dir = find_workspace_root(Path.cwd())

    config_manager = Config(workspace_dir)
    config = config_manager.load()
    root = config_manager.workspace_dir

    logging.getLogger("monotrack").setLevel(config.log_level)

    workspace = WorkspaceView.discover(root, config.packages)
    if store is None:
        store = build_store(root, config)
    if vcs is None:
        vcs = GitGateway(root)

    logger.debug("Opened tracker for %s with %s store", root, config.store.backend)
    return ChangeTracker(workspace, store, vcs=vcs, git_config=config.git)
