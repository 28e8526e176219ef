"""Project domain schemas."""

import uuid
from typing import List, Optional

from pydantic import Field, field_validator

from core.dates import IsoDateTime
from domain.common import ApiModel, Priority, SortOrder, WorkStatus
from domain.task.schemas import TaskResponse
from domain.validators import optional_text, required_text


class ProjectCreateRequest(ApiModel):
    name: Optional[str] = Field(None, validate_default=True)
    description: Optional[str] = None
    status: Optional[WorkStatus] = None
    priority: Optional[Priority] = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v):
        return required_text(v, "Project name")

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, v):
        return optional_text(v, "Description")


class ProjectUpdateRequest(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[WorkStatus] = None
    priority: Optional[Priority] = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v):
        return required_text(v, "Project name")

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, v):
        return optional_text(v, "Description")

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"Project {info.field_name} cannot be null.")
        return v


PROJECT_SORT_FIELDS = ("createdAt", "updatedAt", "name", "taskCount", "status", "priority")


class ProjectListQuery(ApiModel):
    status: Optional[WorkStatus] = None
    priority: Optional[Priority] = None
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.desc

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _all_means_unfiltered(cls, v):
        return None if v in ("", "all") else v

    @field_validator("sort_by")
    @classmethod
    def _validate_sort_by(cls, v):
        if v not in PROJECT_SORT_FIELDS:
            raise ValueError(
                f"sortBy must be one of: {', '.join(PROJECT_SORT_FIELDS)}."
            )
        return v


class ProjectResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    description: Optional[str] = None
    status: WorkStatus
    priority: Priority
    created_at: IsoDateTime
    updated_at: IsoDateTime


class ProjectSummaryResponse(ProjectResponse):
    task_count: int = 0
    completed_task_count: int = 0


class ProjectEnvelope(ApiModel):
    project: ProjectResponse


class ProjectListResponse(ApiModel):
    projects: List[ProjectSummaryResponse]


class ProjectDetailResponse(ApiModel):
    project: ProjectResponse
    tasks: List[TaskResponse]
