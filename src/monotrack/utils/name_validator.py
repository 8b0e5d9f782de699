"""Name validation utilities for monotrack.

Package names come from manifests of several ecosystems (npm scopes such as
``@org/pkg``, Python distributions, crates), so the rules are looser than
filesystem names. Environment names are plain deployment tags.
"""

import re


# npm scoped names ("@org/pkg"), dotted Python names, crate names
VALID_PACKAGE_NAME_PATTERN = re.compile(r"^(@[A-Za-z0-9][\w.\-]*/)?[A-Za-z0-9][\w.\-]*$")

# Environment tags: prod, staging, eu-west_1
VALID_ENVIRONMENT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-_.]*$")

MAX_PACKAGE_NAME_LENGTH = 214


class InvalidNameError(ValueError):
    """Raised when a name doesn't meet validation requirements."""

    pass


def validate_package_name(name: str) -> None:
    """Validate that a package name is usable as a change key.

    Valid names must:
    - Be at least 1 character long and at most 214 characters (npm limit)
    - Contain no whitespace or control characters
    - Contain no path traversal sequences
    - Match ``[@scope/]name`` with letters, numbers, dot, dash and underscore

    Args:
        name: The name to validate

    Raises:
        InvalidNameError: If the name is invalid
    """
    if not name:
        raise InvalidNameError("Package name cannot be empty")

    if len(name) > MAX_PACKAGE_NAME_LENGTH:
        raise InvalidNameError(
            f"Package name cannot exceed {MAX_PACKAGE_NAME_LENGTH} characters"
        )

    if "\x00" in name or any(ord(c) < 32 for c in name):
        raise InvalidNameError("Package name contains invalid control characters")

    if ".." in name or "\\" in name:
        raise InvalidNameError(
            f"Package name '{name}' contains forbidden path traversal characters"
        )

    if not VALID_PACKAGE_NAME_PATTERN.match(name):
        raise InvalidNameError(
            f"Invalid package name '{name}'. "
            f"Names must contain only letters, numbers, dot (.), dash (-) and underscore (_), "
            f"optionally prefixed by an '@scope/'."
        )


def validate_environment_name(name: str) -> None:
    """Validate a deployment environment tag.

    Raises:
        InvalidNameError: If the name is invalid
    """
    if not name:
        raise InvalidNameError("Environment name cannot be empty")

    if not VALID_ENVIRONMENT_PATTERN.match(name):
        raise InvalidNameError(
            f"Invalid environment name '{name}'. "
            f"Names must start with a letter or number and contain only letters, "
            f"numbers, dot (.), dash (-) and underscore (_)."
        )


def is_valid_package_name(name: str) -> bool:
    """Check if a package name is valid without raising an exception."""
    try:
        validate_package_name(name)
        return True
    except InvalidNameError:
        return False
