"""Change tracking for monorepo packages."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from monotrack.config import GitConfig
from monotrack.core.manifest import read_package_manifest
from monotrack.core.path_utils import lexical_absolute
from monotrack.core.workspace import WorkspaceView
from monotrack.errors import (
    NoChangesFoundError,
    NoRepositoryError,
    ReservedPackageNameError,
    UnknownPackageError,
    VcsDegradedError,
)
from monotrack.infrastructure.change_store import ChangeStore
from monotrack.managers.classifier import ChangeClassifier
from monotrack.managers.scope_resolver import ScopeResolver
from monotrack.models import (
    Change,
    ChangeScope,
    Changeset,
    Commit,
    FileDelta,
    MONOREPO_KEY,
    RESERVED_PACKAGE_KEYS,
    ROOT_KEY,
    ScopeKind,
)
from monotrack.utils.name_validator import is_valid_package_name
from monotrack.vcs.gateway import VcsGateway

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Detects, records and releases changes of the packages in a workspace.

    A tracker is not thread-safe; operations on one instance must run one
    at a time.
    """

    def __init__(
        self,
        workspace: WorkspaceView,
        store: ChangeStore,
        vcs: Optional[VcsGateway] = None,
        git_config: Optional[GitConfig] = None,
        classifier: Optional[ChangeClassifier] = None,
    ):
        """Initialize change tracker.

        Args:
            workspace: Workspace the changes belong to
            store: Store that owns recorded changes
            vcs: Revision-control gateway, required for detection only
            git_config: Git identity recorded as author of detected changes
            classifier: Commit classifier (default: conventional commits)

        Raises:
            ReservedPackageNameError: If a package is named 'monorepo' or 'root'
        """
        for name in workspace.package_names():
            if name in RESERVED_PACKAGE_KEYS:
                raise ReservedPackageNameError(name)

        self.workspace = workspace
        self.store = store
        self.vcs = vcs
        self.git_config = git_config or GitConfig()
        self.classifier = classifier or ChangeClassifier()
        self.scope_resolver = ScopeResolver(workspace)

    # Attribution

    def scope_of(self, file_path: Union[str, Path]) -> ChangeScope:
        """Resolve the scope owning a file."""
        return self.scope_resolver.scope_of(file_path)

    def clear_cache(self) -> None:
        """Clear the file scope cache."""
        self.scope_resolver.clear_cache()

    def _attribute_by_manifest(self, file_path: str) -> Optional[str]:
        """Find the nearest enclosing directory whose manifest declares a name.

        Used for files outside every known package; the workspace root itself
        is never considered. Manifests declaring a reserved key or an invalid
        package name are passed over.
        """
        root = self.workspace.lexical_root_path()
        directory = lexical_absolute(file_path, root).parent
        while directory != root and root in directory.parents:
            manifest = read_package_manifest(directory)
            if manifest is not None:
                name = manifest.name
                if name in RESERVED_PACKAGE_KEYS or not is_valid_package_name(name):
                    logger.debug("Ignoring manifest %s with name %r", manifest.path, name)
                else:
                    logger.debug("File %s claimed by manifest %s", file_path, manifest.path)
                    return name
            directory = directory.parent
        return None

    def _group_files(self, files: Iterable[FileDelta]):
        package_files: Dict[str, List[FileDelta]] = {}
        monorepo_files: List[FileDelta] = []
        root_files: List[FileDelta] = []

        for file in files:
            scope = self.scope_of(file.path)
            if scope.kind == ScopeKind.PACKAGE:
                package_files.setdefault(scope.package, []).append(file)
            elif scope.kind == ScopeKind.ROOT:
                root_files.append(file)
            else:
                owner = self._attribute_by_manifest(file.path)
                if owner is not None:
                    package_files.setdefault(owner, []).append(file)
                else:
                    monorepo_files.append(file)

        return package_files, monorepo_files, root_files

    # Detection

    def _build_change(self, package: str, files: List[FileDelta], commits: List[Commit]) -> Change:
        # every scope sees all commits of the range; no per-file filtering
        kind, breaking = self.classifier.classify(commits)
        change = Change(
            package=package,
            kind=kind,
            breaking=breaking,
            description=self.classifier.describe(commits, len(files)),
        )

        if self.git_config.user_name:
            change.author = self.git_config.user_name
        elif commits:
            change.author = commits[0].author_name or None

        logger.debug(
            "Change for %s: %s (%d files, %d commits)", package, change.kind, len(files), len(commits)
        )
        return change

    def detect_between(self, from_ref: str, to_ref: Optional[str] = None) -> List[Change]:
        """Detect changes between two revisions without storing them.

        Args:
            from_ref: Revision to compare the working tree against
            to_ref: End of the commit range used for classification (default HEAD)

        Returns:
            One Change per package touched, followed by the monorepo and root
            changes when present

        Raises:
            NoRepositoryError: If the workspace has no repository
            RefNotFoundError: If from_ref cannot be resolved
            NoChangesFoundError: If no file changed
        """
        logger.info("Detecting changes from %s to %s", from_ref, to_ref or "HEAD")

        if self.vcs is None or not self.vcs.repository_present():
            raise NoRepositoryError(self.workspace.root_path())

        self.clear_cache()

        changed_files = list(self.vcs.files_changed_since(from_ref))
        if not changed_files:
            logger.info("No changes found since %s", from_ref)
            raise NoChangesFoundError(from_ref)

        logger.info("Found %d changed files", len(changed_files))

        try:
            commits = self.vcs.commits_since(from_ref, to_ref)
        except VcsDegradedError as e:
            logger.warning("%s; classifying changes without commits", e)
            commits = []

        package_files, monorepo_files, root_files = self._group_files(changed_files)

        changes = [
            self._build_change(package, files, commits)
            for package, files in package_files.items()
        ]
        if monorepo_files:
            changes.append(self._build_change(MONOREPO_KEY, monorepo_files, commits))
        if root_files:
            changes.append(self._build_change(ROOT_KEY, root_files, commits))

        logger.info("Created %d changes", len(changes))
        return changes

    # Recording

    def _validate_package(self, package: str) -> None:
        if package in RESERVED_PACKAGE_KEYS:
            return
        if self.workspace.get_package(package) is None:
            raise UnknownPackageError(package)

    def record(self, change: Change) -> None:
        """Record a single change as its own changeset.

        Args:
            change: Change to store

        Raises:
            UnknownPackageError: If the change's package is not in the workspace
            StoreError: If the change already belongs to a stored changeset
        """
        self._validate_package(change.package)
        self.store.store_changeset(Changeset(changes=[change]))

    def create_changeset(self, summary: Optional[str], changes: List[Change]) -> Changeset:
        """Create and store a changeset.

        Nothing is stored unless every change references a known package.

        Args:
            summary: Optional changeset summary
            changes: Changes in the changeset

        Returns:
            The stored Changeset

        Raises:
            UnknownPackageError: If any change's package is not in the workspace
            StoreError: If a change already belongs to another stored changeset
        """
        for change in changes:
            self._validate_package(change.package)

        changeset = Changeset(summary=summary, changes=list(changes))
        self.store.store_changeset(changeset)
        return changeset

    def get_changeset(self, changeset_id: str) -> Optional[Changeset]:
        return self.store.get_changeset(changeset_id)

    # Queries

    def unreleased_changes(self) -> Dict[str, List[Change]]:
        """Get unreleased changes grouped by package.

        Returns:
            Mapping of package key to its unreleased changes; packages without
            unreleased changes are omitted
        """
        unreleased = {}
        for package, changes in self.store.get_all_changes_by_package().items():
            pending = [c for c in changes if c.release_version is None]
            if pending:
                unreleased[package] = pending
        return unreleased

    def unreleased_changes_for_environment(self, environment: str) -> Dict[str, List[Change]]:
        """Get unreleased changes that apply to an environment.

        Changes without environment restrictions apply to every environment.
        """
        filtered = {}
        for package, changes in self.unreleased_changes().items():
            applicable = [c for c in changes if c.applies_to_environment(environment)]
            if applicable:
                filtered[package] = applicable
        return filtered

    def released_changes(self, package: str) -> List[Change]:
        return self.store.get_released_changes(package)

    def changes_by_version(self, package: str) -> Dict[str, List[Change]]:
        """Group a package's changes by release version ('unreleased' for pending)."""
        return self.store.get_changes_by_version(package)

    # Releasing

    def mark_released(self, package: str, version: str, dry_run: bool = False) -> List[Change]:
        """Mark every unreleased change of a package as released.

        Args:
            package: Package key
            version: Release version
            dry_run: Report what would change without writing

        Returns:
            Changes that were (or would be) released

        Raises:
            UnknownPackageError: If the package is not in the workspace
        """
        self._validate_package(package)
        released = self.store.mark_changes_as_released(package, version, dry_run)
        logger.info(
            "%s %d changes of %s as %s",
            "Would mark" if dry_run else "Marked", len(released), package, version,
        )
        return released

    def mark_released_for_environment(
        self, package: str, version: str, environment: str, dry_run: bool = False
    ) -> List[Change]:
        """Mark the unreleased changes of a package targeted at an environment.

        Only changes explicitly tagged with the environment are released;
        unrestricted changes wait for a package-wide ``mark_released``.

        Raises:
            UnknownPackageError: If the package is not in the workspace
        """
        self._validate_package(package)
        applicable = [
            c.id
            for c in self.store.get_unreleased_changes(package)
            if environment in c.environments
        ]
        if not applicable:
            return []
        return self.mark_specific_changes_as_released(package, version, applicable, dry_run)

    def mark_specific_changes_as_released(
        self, package: str, version: str, change_ids: Iterable[str], dry_run: bool = False
    ) -> List[Change]:
        """Mark selected unreleased changes of a package as released.

        Only changesets containing at least one updated change are written
        back, one at a time.

        Args:
            package: Package key
            version: Release version
            change_ids: Ids of the changes to release
            dry_run: Report what would change without writing

        Returns:
            Changes actually updated (ids that are unknown, released, or of
            another package are skipped)

        Raises:
            UnknownPackageError: If the package is not in the workspace
        """
        self._validate_package(package)
        wanted = set(change_ids)

        updated_changes: List[Change] = []
        updated_changesets: List[Changeset] = []

        for changeset in self.store.get_all_changesets():
            has_updates = False
            for change in changeset.changes:
                if (
                    change.package == package
                    and change.release_version is None
                    and change.id in wanted
                ):
                    change.mark_released(version)
                    updated_changes.append(change)
                    has_updates = True
            if has_updates:
                updated_changesets.append(changeset)

        if not dry_run:
            for changeset in updated_changesets:
                self.store.store_changeset(changeset)

        logger.info(
            "%s %d of %d requested changes of %s as %s",
            "Would mark" if dry_run else "Marked",
            len(updated_changes), len(wanted), package, version,
        )
        return updated_changes
