"""Task domain schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from core.dates import IsoDateTime, parse_datetime_input
from core.ids import is_valid_uuid
from domain.common import (
    ApiModel,
    Priority,
    SortOrder,
    WorkStatus,
    resolve_enum_value,
)
from domain.validators import optional_text, required_text

TASK_SORT_FIELDS = ("createdAt", "updatedAt", "dueDate", "title", "status", "priority")


def _parse_due_date(v):
    if v is None or v == "":
        return None
    try:
        return parse_datetime_input(v)
    except ValueError:
        raise ValueError("Invalid due date.") from None


def _parse_project_id(v):
    if v is None or v == "" or v == "none":
        return None
    if isinstance(v, uuid.UUID):
        return v
    if not is_valid_uuid(v):
        raise ValueError("Invalid project id.")
    return v


class _TaskFields(ApiModel):
    description: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    project_id: Optional[uuid.UUID] = None

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, v):
        return optional_text(v, "Description")

    @field_validator("priority", mode="before")
    @classmethod
    def _empty_priority(cls, v):
        return None if v == "" else v

    @field_validator("due_date", mode="before")
    @classmethod
    def _validate_due_date(cls, v):
        return _parse_due_date(v)

    @field_validator("project_id", mode="before")
    @classmethod
    def _validate_project_id(cls, v):
        return _parse_project_id(v)


class TaskCreateRequest(_TaskFields):
    title: Optional[str] = Field(None, validate_default=True)
    status: WorkStatus = WorkStatus.todo

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, v):
        return required_text(v, "Title")

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v):
        return WorkStatus.todo if v is None else v


class TaskUpdateRequest(_TaskFields):
    title: Optional[str] = None
    status: Optional[WorkStatus] = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, v):
        return required_text(v, "Title")

    @field_validator("status", mode="before")
    @classmethod
    def _reject_null_status(cls, v):
        if v is None:
            raise ValueError("Task status cannot be null.")
        return v


class TaskStatusUpdateRequest(ApiModel):
    status: Optional[WorkStatus] = Field(None, validate_default=True)

    @field_validator("status", mode="before")
    @classmethod
    def _require_status(cls, v):
        if v is None or v == "":
            raise ValueError("Task status is required.")
        if resolve_enum_value(v, WorkStatus) is None:
            raise ValueError(
                "Invalid task status. Must be one of: todo, in_progress, done."
            )
        return v


class TaskListQuery(ApiModel):
    status: Optional[WorkStatus] = None
    priority: Optional[Priority] = None
    project_id: Optional[uuid.UUID] = None
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.desc

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _all_means_unfiltered(cls, v):
        return None if v in ("", "all") else v

    @field_validator("project_id", mode="before")
    @classmethod
    def _validate_project_filter(cls, v):
        if v in ("", "all"):
            return None
        if not is_valid_uuid(v):
            raise ValueError("Invalid project filter.")
        return v

    @field_validator("sort_by")
    @classmethod
    def _validate_sort_by(cls, v):
        if v not in TASK_SORT_FIELDS:
            raise ValueError(f"sortBy must be one of: {', '.join(TASK_SORT_FIELDS)}.")
        return v


class TaskResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    status: WorkStatus
    priority: Optional[Priority] = None
    due_date: Optional[IsoDateTime] = None
    created_at: IsoDateTime
    updated_at: IsoDateTime


class TaskEnvelope(ApiModel):
    task: TaskResponse


class TaskListResponse(ApiModel):
    tasks: List[TaskResponse]
