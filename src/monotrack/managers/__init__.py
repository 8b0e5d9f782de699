"""monotrack managers."""

from monotrack.managers.change_tracker import ChangeTracker
from monotrack.managers.classifier import ChangeClassifier
from monotrack.managers.scope_resolver import ScopeResolver

__all__ = [
    "ChangeTracker",
    "ChangeClassifier",
    "ScopeResolver",
]
