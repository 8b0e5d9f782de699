"""Core monotrack functionality."""

from monotrack.core.manifest import ManifestInfo, read_package_manifest
from monotrack.core.path_utils import find_workspace_root
from monotrack.core.workspace import WorkspaceView

__all__ = ["ManifestInfo", "read_package_manifest", "find_workspace_root", "WorkspaceView"]
