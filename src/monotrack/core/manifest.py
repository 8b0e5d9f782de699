"""Minimal package manifest reading.

Only the declared name and version are read; full manifest parsing belongs to
the workspace tooling that produces a WorkspaceView.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger(__name__)

MANIFEST_FILES = ("package.json", "pyproject.toml", "Cargo.toml")


@dataclass(frozen=True)
class ManifestInfo:
    """Name and version declared by a package manifest."""

    name: str
    version: Optional[str]
    path: Path


def _load(manifest_path: Path) -> Dict[str, Any]:
    with open(manifest_path, "r", encoding="utf-8") as f:
        if manifest_path.suffix == ".json":
            return json.load(f)
        return toml.load(f)


def _declared(manifest_path: Path, data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the table holding name/version for a manifest type."""
    if manifest_path.name == "package.json":
        return data
    if manifest_path.name == "Cargo.toml":
        return data.get("package") or {}
    # pyproject.toml: PEP 621 first, then poetry
    project = data.get("project")
    if project and project.get("name"):
        return project
    return data.get("tool", {}).get("poetry") or {}


def read_package_manifest(directory: Path) -> Optional[ManifestInfo]:
    """Read the first manifest in a directory that declares a package name.

    Args:
        directory: Directory to look in

    Returns:
        ManifestInfo, or None if no manifest declares a name
    """
    for filename in MANIFEST_FILES:
        manifest_path = Path(directory) / filename
        if not manifest_path.is_file():
            continue
        try:
            data = _load(manifest_path)
        except (OSError, ValueError, toml.TomlDecodeError) as e:
            logger.warning("Skipping unreadable manifest %s: %s", manifest_path, e)
            continue
        if not isinstance(data, dict):
            continue

        declared = _declared(manifest_path, data)
        name = declared.get("name") if isinstance(declared, dict) else None
        if isinstance(name, str) and name.strip():
            version = declared.get("version")
            return ManifestInfo(
                name=name.strip(),
                version=version if isinstance(version, str) else None,
                path=manifest_path,
            )

    return None
