"""Identifier validation."""

import re
import uuid
from typing import Any

from core.exceptions import ValidationError

# UUID v4, case-insensitive
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(value) and UUID_PATTERN.match(value) is not None


def parse_uuid(value: Any, resource: str) -> uuid.UUID:
    """Parse a path/query identifier, raising a 400 naming the resource on failure."""
    if isinstance(value, uuid.UUID):
        return value
    if not is_valid_uuid(value):
        raise ValidationError(f"Invalid {resource} id.", field="id")
    return uuid.UUID(value)
