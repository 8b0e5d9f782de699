"""File to package attribution."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from monotrack.core.path_utils import canonicalize, is_within, lexical_absolute
from monotrack.core.workspace import WorkspaceView
from monotrack.models import ChangeScope, MONOREPO_SCOPE, ROOT_SCOPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PackageLocation:
    name: str
    canonical_path: Path
    lexical_path: Path
    canonical: bool


class ScopeResolver:
    """Maps file paths to the package, monorepo infrastructure, or root.

    Resolution never fails: paths that cannot be read are treated as not
    belonging to any package. Results are cached by the path string the
    caller passed in, so the cache must be cleared whenever the workspace
    on disk may have changed.
    """

    def __init__(self, workspace: WorkspaceView):
        """Initialize the resolver.

        Args:
            workspace: Workspace whose packages files are attributed to
        """
        self.workspace = workspace
        self._cache: Dict[str, ChangeScope] = {}
        self._locations: Optional[List[_PackageLocation]] = None

    def clear_cache(self) -> None:
        """Forget cached scopes and package locations."""
        logger.debug("Clearing file scope cache (%d entries)", len(self._cache))
        self._cache.clear()
        self._locations = None

    def scope_of(self, file_path: Union[str, Path]) -> ChangeScope:
        """Resolve the scope owning a file.

        Args:
            file_path: Absolute path, or path relative to the workspace root

        Returns:
            ChangeScope for the file
        """
        key = str(file_path)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s mapped to %s", key, cached)
            return cached

        try:
            scope = self._resolve(file_path)
        except (OSError, ValueError) as e:
            logger.debug("Could not resolve %s (%s), treating as monorepo", key, e)
            scope = MONOREPO_SCOPE

        logger.debug("File %s mapped to %s", key, scope)
        self._cache[key] = scope
        return scope

    def _package_locations(self) -> List[_PackageLocation]:
        if self._locations is None:
            lexical_root = self.workspace.lexical_root_path()
            locations = []
            # workspace order: longest canonical path first
            for package in self.workspace.packages():
                canonical_path, resolved = canonicalize(package.canonical_path, lexical_root)
                locations.append(
                    _PackageLocation(
                        name=package.name,
                        canonical_path=canonical_path,
                        lexical_path=lexical_absolute(package.path, lexical_root),
                        canonical=resolved,
                    )
                )
            self._locations = locations
        return self._locations

    def _resolve(self, file_path: Union[str, Path]) -> ChangeScope:
        root = self.workspace.root_path()
        lexical_root = self.workspace.lexical_root_path()

        lexical = lexical_absolute(file_path, lexical_root)
        canonical, resolved = canonicalize(lexical, lexical_root)

        for location in self._package_locations():
            if is_within(canonical, location.canonical_path):
                return ChangeScope.for_package(location.name)
            # deleted files and packages that do not exist yet
            if (not resolved or not location.canonical) and is_within(
                lexical, location.lexical_path
            ):
                return ChangeScope.for_package(location.name)

        roots = (root, lexical_root)
        if canonical.parent in roots or lexical.parent in roots:
            return ROOT_SCOPE

        return MONOREPO_SCOPE
