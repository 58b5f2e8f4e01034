"""
Input validation functions.
"""

import re

from cephshare.exceptions import InvalidVolumeName


def validate_name(name: str) -> None:
    """
    Validate a volume name.

    Names may contain `/` (e.g. "monitor/share/path") but every segment must
    start with an alphanumeric character, so the host path always stays
    below the mount root.

    Args:
        name: Name to validate

    Raises:
        InvalidVolumeName: If name is invalid
    """
    if not name:
        raise InvalidVolumeName("Name cannot be empty")

    if len(name) > 255:
        raise InvalidVolumeName("Name must be at most 255 characters")

    for segment in name.split("/"):
        if not re.match(r"^[a-zA-Z0-9][a-zA-Z0-9._:-]*$", segment):
            raise InvalidVolumeName(
                f"Invalid volume name '{name}': each path segment must start with alphanumeric "
                "and contain only alphanumeric, dots, colons, underscores, or hyphens"
            )
