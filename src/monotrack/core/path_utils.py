"""Path utilities for monotrack."""

import os
from pathlib import Path
from typing import Tuple, Union

CONFIG_DIR_NAME = ".monotrack"

PathLike = Union[str, Path]


def find_workspace_root(start_path: PathLike) -> Path:
    """Find the workspace root by looking for a .monotrack directory.

    Args:
        start_path: Path to start searching from

    Returns:
        Path to workspace root

    Raises:
        FileNotFoundError: If no workspace root found
    """
    current = Path(start_path).resolve()

    while current != current.parent:
        if (current / CONFIG_DIR_NAME).exists():
            return current
        current = current.parent

    raise FileNotFoundError(f"No monotrack workspace found from {start_path}")


def get_config_dir(workspace_root: Path) -> Path:
    """Get path to the workspace's .monotrack directory."""
    return Path(workspace_root) / CONFIG_DIR_NAME


def get_config_path(workspace_root: Path) -> Path:
    """Get path to the workspace's config.toml."""
    return get_config_dir(workspace_root) / "config.toml"


def get_store_path(workspace_root: Path, store_path: PathLike) -> Path:
    """Resolve a configured store location against the workspace root.

    Args:
        workspace_root: Workspace root directory
        store_path: Configured location (relative to root or absolute)

    Returns:
        Absolute store location
    """
    store_path = Path(store_path)
    if store_path.is_absolute():
        return store_path
    return Path(workspace_root) / store_path


def ensure_directory(path: Path) -> None:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists
    """
    path.mkdir(parents=True, exist_ok=True)


def lexical_absolute(path: PathLike, root: PathLike) -> Path:
    """Make a path absolute against root and normalize it without touching disk."""
    path = Path(path)
    if not path.is_absolute():
        path = Path(root) / path
    return Path(os.path.normpath(str(path)))


def canonicalize(path: PathLike, root: PathLike) -> Tuple[Path, bool]:
    """Resolve symlinks of a path, falling back to its lexical form.

    Args:
        path: Absolute path, or path relative to root
        root: Directory relative paths are joined onto

    Returns:
        Tuple of (path, canonical) where canonical tells whether symlink
        resolution succeeded. Paths that do not exist (deleted files) come
        back lexically normalized with canonical=False.
    """
    absolute = lexical_absolute(path, root)
    try:
        return absolute.resolve(strict=True), True
    except (OSError, RuntimeError):
        return absolute, False


def is_within(path: Path, directory: Path) -> bool:
    """Check whether path equals or lies under directory at a segment boundary.

    ``/repo/pkg-a-extra/x`` is not within ``/repo/pkg-a``.
    """
    path_parts = path.parts
    dir_parts = directory.parts
    if len(dir_parts) > len(path_parts):
        return False
    return path_parts[: len(dir_parts)] == dir_parts
