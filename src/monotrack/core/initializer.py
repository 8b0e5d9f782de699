"""Workspace initialization for monotrack."""

import logging
from pathlib import Path
from typing import List, Optional

from monotrack.config import GitConfig, ProjectConfig, StoreConfig, Config
from monotrack.core.path_utils import ensure_directory, get_config_dir, get_store_path

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATHS = {
    "file": ".changes",
    "sqlite": ".monotrack/changes.db",
    "memory": "",
}


class WorkspaceInitializer:
    """Handles initialization of monotrack workspaces."""

    def __init__(self, workspace_dir: Optional[Path] = None):
        """Initialize the workspace initializer.

        Args:
            workspace_dir: Path to workspace root. If None, uses current directory.
        """
        self.workspace_dir = Path(workspace_dir) if workspace_dir else Path.cwd()
        self.config_dir = get_config_dir(self.workspace_dir)
        self.config_path = self.config_dir / "config.toml"

    def init_workspace(
        self,
        packages: Optional[List[str]] = None,
        backend: str = "file",
        git_user_name: Optional[str] = None,
        git_user_email: Optional[str] = None,
    ) -> ProjectConfig:
        """Initialize a new workspace with default configuration.

        Args:
            packages: Glob patterns locating package directories
            backend: Store backend (file, sqlite or memory)
            git_user_name: Author recorded on detected changes
            git_user_email: Email of that author

        Returns:
            The created ProjectConfig

        Raises:
            FileExistsError: If a workspace already exists at the location
        """
        if self.config_path.exists():
            raise FileExistsError(f"Workspace already exists at {self.config_dir}")

        store = StoreConfig(backend=backend, path=DEFAULT_STORE_PATHS.get(backend, ".changes"))
        config = ProjectConfig(
            git=GitConfig(user_name=git_user_name, user_email=git_user_email),
            store=store,
        )
        if packages is not None:
            config.packages = list(packages)

        ensure_directory(self.config_dir)
        Config(self.workspace_dir).save(config)

        if store.backend == "file":
            ensure_directory(get_store_path(self.workspace_dir, store.path))

        logger.info("Initialized monotrack workspace in %s", self.workspace_dir)
        return config


def init_workspace(
    workspace_dir: Optional[Path] = None,
    packages: Optional[List[str]] = None,
    backend: str = "file",
    git_user_name: Optional[str] = None,
    git_user_email: Optional[str] = None,
) -> ProjectConfig:
    """Initialize a new monotrack workspace.

    This is a convenience function that creates a WorkspaceInitializer
    and initializes the workspace.

    Args:
        workspace_dir: Directory to initialize (default: current directory)
        packages: Glob patterns locating package directories
        backend: Store backend (file, sqlite or memory)
        git_user_name: Author recorded on detected changes
        git_user_email: Email of that author

    Returns:
        The created ProjectConfig

    Raises:
        FileExistsError: If a workspace already exists at the location
    """
    initializer = WorkspaceInitializer(workspace_dir)
    return initializer.init_workspace(
        packages=packages,
        backend=backend,
        git_user_name=git_user_name,
        git_user_email=git_user_email,
    )
