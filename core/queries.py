"""Query helpers shared by the per-user resource routers."""

import uuid
from typing import Any, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ResourceNotFoundError, ValidationError
from domain.common import SortOrder
from domain.project.models import Project

ModelT = TypeVar("ModelT")
QueryT = TypeVar("QueryT", bound=BaseModel)


async def get_owned(
    session: AsyncSession,
    model: Type[ModelT],
    obj_id: uuid.UUID,
    user_id: uuid.UUID,
    resource: str,
) -> ModelT:
    """Load ``model`` by id scoped to ``user_id``; missing and foreign rows both 404."""
    result = await session.execute(
        select(model).where(model.id == obj_id, model.user_id == user_id)
    )
    obj = result.scalar_one_or_none()
    if obj is None:
        raise ResourceNotFoundError(resource)
    return obj


async def ensure_project_owned(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    """Reject a project reference the user does not own (400, not 404)."""
    result = await session.execute(
        select(Project.id).where(Project.id == project_id, Project.user_id == user_id)
    )
    if result.scalar_one_or_none() is None:
        raise ValidationError("Project not found or access denied.", field="projectId")


def updated_fields(payload: BaseModel) -> dict[str, Any]:
    """Return the fields present in a partial update payload."""
    fields = {name: getattr(payload, name) for name in payload.model_fields_set}
    if not fields:
        raise ValidationError("No valid fields provided for update.")
    return fields


def ordering(column, sort_order: SortOrder, tie_breaker) -> list:
    """ORDER BY ``column`` in the requested direction, then ``tie_breaker`` ascending."""
    primary = column.asc() if sort_order == SortOrder.asc else column.desc()
    return [primary, tie_breaker.asc()]


def parse_list_query(query_model: Type[QueryT], **params: Any) -> QueryT:
    """Validate list query-string parameters, dropping the ones not supplied.

    Keyword names are the camelCase wire names.
    """
    return query_model.model_validate(
        {name: value for name, value in params.items() if value is not None}
    )
