"""Enumerations and schema base shared by the resource domains."""

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WorkStatus(str, enum.Enum):
    """Status of a project or task (the three Kanban columns)."""

    todo = "todo"
    in_progress = "in_progress"
    done = "done"


class Priority(str, enum.Enum):
    """Project/task priority."""

    low = "low"
    medium = "medium"
    high = "high"


class SortOrder(str, enum.Enum):
    asc = "asc"
    desc = "desc"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def resolve_enum_value(value: Any, enum_cls: type[enum.Enum]) -> Optional[enum.Enum]:
    """Return the enum member for ``value`` or None when it is not a member."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(ApiModel):
    success: bool = True
    message: str
