"""Read-only snapshot of a monorepo workspace."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from monotrack.core.manifest import read_package_manifest
from monotrack.core.path_utils import canonicalize, lexical_absolute
from monotrack.models import Package

logger = logging.getLogger(__name__)


class WorkspaceView:
    """Root path plus the packages of a monorepo.

    Packages are kept ordered by decreasing canonical path length so that
    the deepest (most specific) package is always considered first.
    """

    def __init__(self, root: Union[str, Path], packages: Iterable[Package] = ()):
        """Initialize the workspace view.

        Args:
            root: Workspace root directory
            packages: Packages of the workspace, in any order

        Raises:
            ValueError: If two packages share a name
        """
        self._lexical_root = lexical_absolute(root, Path.cwd())
        self._root, _ = canonicalize(self._lexical_root, self._lexical_root)

        by_name: Dict[str, Package] = {}
        for package in packages:
            if package.name in by_name:
                raise ValueError(f"Duplicate package name '{package.name}' in workspace")
            by_name[package.name] = package

        self._by_name = by_name
        # sorted() is stable: equal lengths keep declaration order
        self._packages = sorted(
            by_name.values(), key=lambda p: len(str(p.canonical_path)), reverse=True
        )

    @classmethod
    def from_paths(
        cls, root: Union[str, Path], packages: Dict[str, Union[str, Path]]
    ) -> "WorkspaceView":
        """Build a view from a ``name -> directory`` mapping.

        Directories may be relative to root. Canonical paths are resolved
        when the directory exists and kept lexical otherwise.
        """
        lexical_root = lexical_absolute(root, Path.cwd())
        built = []
        for name, path in packages.items():
            canonical, _ = canonicalize(path, lexical_root)
            built.append(Package(name=name, path=Path(path), canonical_path=canonical))
        return cls(lexical_root, built)

    @classmethod
    def discover(
        cls, root: Union[str, Path], patterns: Sequence[str] = ("packages/*",)
    ) -> "WorkspaceView":
        """Discover packages by globbing directories under root.

        Every matched directory whose manifest declares a name becomes a
        package. Directories without a usable manifest, or whose manifest
        declares an invalid package name, are skipped.

        Args:
            root: Workspace root directory
            patterns: Glob patterns relative to root (e.g. ``packages/*``)

        Returns:
            WorkspaceView over the discovered packages
        """
        lexical_root = lexical_absolute(root, Path.cwd())
        packages: Dict[str, Package] = {}

        for pattern in patterns:
            for directory in sorted(lexical_root.glob(pattern)):
                if not directory.is_dir():
                    continue
                manifest = read_package_manifest(directory)
                if manifest is None:
                    logger.debug("No package manifest in %s", directory)
                    continue
                if manifest.name in packages:
                    logger.warning(
                        "Package '%s' declared twice, keeping %s",
                        manifest.name,
                        packages[manifest.name].path,
                    )
                    continue
                canonical, _ = canonicalize(directory, lexical_root)
                try:
                    package = Package(
                        name=manifest.name,
                        path=directory.relative_to(lexical_root),
                        canonical_path=canonical,
                        version=manifest.version,
                        manifest=manifest.path,
                    )
                except ValidationError as e:
                    logger.warning("Skipping package in %s: %s", directory, e)
                    continue
                packages[manifest.name] = package

        logger.info("Discovered %d packages under %s", len(packages), lexical_root)
        return cls(lexical_root, packages.values())

    def root_path(self) -> Path:
        """Canonical absolute workspace root."""
        return self._root

    def lexical_root_path(self) -> Path:
        """Workspace root as given, absolute but with symlinks unresolved."""
        return self._lexical_root

    def packages(self) -> List[Package]:
        """Packages ordered longest canonical path first."""
        return list(self._packages)

    def get_package(self, name: str) -> Optional[Package]:
        return self._by_name.get(name)

    def package_names(self) -> List[str]:
        return list(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"WorkspaceView(root={self._root!s}, packages={self.package_names()!r})"
