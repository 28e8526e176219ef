"""Field rules shared by the create/update schemas.

Each helper raises ``ValueError`` with the message returned to the caller;
the request validation handler turns it into a 400 response.
"""

from typing import Any, Optional

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2000


def required_text(value: Any, label: str, max_length: int = NAME_MAX_LENGTH) -> str:
    """Trim a required name/title; empty after trimming is rejected."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required.")
    trimmed = value.strip()
    if len(trimmed) > max_length:
        raise ValueError(f"{label} must be {max_length} characters or fewer.")
    return trimmed


def optional_text(
    value: Any, label: str, max_length: Optional[int] = None
) -> Optional[str]:
    """Trim an optional free-text field; empty becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string or null.")
    trimmed = value.strip()
    if max_length is not None and len(trimmed) > max_length:
        raise ValueError(f"{label} must be {max_length} characters or fewer.")
    return trimmed or None
