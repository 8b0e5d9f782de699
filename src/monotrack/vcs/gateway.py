"""The narrow revision-control surface the change tracker depends on."""

from typing import Iterator, List, Optional, Protocol, runtime_checkable

from monotrack.models import Commit, FileDelta


@runtime_checkable
class VcsGateway(Protocol):
    def files_changed_since(self, ref: str) -> Iterator[FileDelta]:
        """
        Files whose state differs between ``ref`` and the working tree.

        Raises NoRepositoryError, or RefNotFoundError for an unknown ref.
        """
        ...

    def commits_since(self, from_ref: str, to_ref: Optional[str] = None) -> List[Commit]:
        """
        Commits reachable from ``to_ref`` (default HEAD) but not from
        ``from_ref``, newest first. An empty list is a normal result.

        Raises NoRepositoryError, or VcsDegradedError for any other failure.
        """
        ...

    def repository_present(self) -> bool:
        ...
