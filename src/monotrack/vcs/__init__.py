"""Revision-control adapters."""

from monotrack.vcs.gateway import VcsGateway
from monotrack.vcs.git import GitGateway

__all__ = ["VcsGateway", "GitGateway"]
