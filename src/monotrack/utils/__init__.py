"""Utility modules for monotrack."""

from monotrack.utils.name_validator import (
    validate_package_name,
    validate_environment_name,
    is_valid_package_name,
    InvalidNameError,
)

__all__ = [
    "validate_package_name",
    "validate_environment_name",
    "is_valid_package_name",
    "InvalidNameError",
]
