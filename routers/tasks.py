"""Task management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_session
from core.dates import utcnow
from core.ids import parse_uuid
from core.logging import get_logger
from core.queries import (
    ensure_project_owned,
    get_owned,
    ordering,
    parse_list_query,
    updated_fields,
)
from domain.common import MessageResponse
from domain.task.models import Task
from domain.task.schemas import (
    TaskCreateRequest,
    TaskEnvelope,
    TaskListQuery,
    TaskListResponse,
    TaskResponse,
    TaskStatusUpdateRequest,
    TaskUpdateRequest,
)
from domain.user.models import User

logger = get_logger(__name__)
router = APIRouter()


def _priority_value(priority):
    return priority.value if priority is not None else None


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None, alias="projectId"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    params = parse_list_query(
        TaskListQuery,
        status=status_filter,
        priority=priority,
        projectId=project_id,
        sortBy=sort_by,
        sortOrder=sort_order,
    )

    query = select(Task).where(Task.user_id == current_user.id)
    if params.status is not None:
        query = query.where(Task.status == params.status)
    if params.priority is not None:
        query = query.where(Task.priority == params.priority.value)
    if params.project_id is not None:
        query = query.where(Task.project_id == params.project_id)

    sort_columns = {
        "createdAt": Task.created_at,
        "updatedAt": Task.updated_at,
        "dueDate": Task.due_date,
        "title": Task.title,
        "status": Task.status,
        "priority": Task.priority,
    }
    query = query.order_by(
        *ordering(sort_columns[params.sort_by], params.sort_order, Task.id)
    )

    result = await session.execute(query)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(task) for task in result.scalars().all()]
    )


@router.post("", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if payload.project_id is not None:
        await ensure_project_owned(session, payload.project_id, current_user.id)

    task = Task(
        user_id=current_user.id,
        project_id=payload.project_id,
        title=payload.title,
        description=payload.description,
        status=payload.status,
        priority=_priority_value(payload.priority),
        due_date=payload.due_date,
    )
    session.add(task)
    await session.commit()
    await session.refresh(task)

    logger.info("task_created", task_id=str(task.id))
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.patch("/{task_id}", response_model=TaskEnvelope)
async def update_task(
    task_id: str,
    payload: TaskUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    task = await get_owned(
        session, Task, parse_uuid(task_id, "task"), current_user.id, "Task"
    )
    changes = updated_fields(payload)

    if changes.get("project_id") is not None:
        await ensure_project_owned(session, changes["project_id"], current_user.id)
    if "priority" in changes:
        changes["priority"] = _priority_value(changes["priority"])

    for field, value in changes.items():
        setattr(task, field, value)
    task.updated_at = utcnow()

    await session.commit()
    await session.refresh(task)
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.patch("/{task_id}/status", response_model=TaskEnvelope)
async def update_task_status(
    task_id: str,
    payload: TaskStatusUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Status-only update used by the Kanban board."""
    task = await get_owned(
        session, Task, parse_uuid(task_id, "task"), current_user.id, "Task"
    )

    task.status = payload.status
    task.updated_at = utcnow()
    await session.commit()
    await session.refresh(task)

    logger.info("task_status_updated", task_id=str(task.id), status=task.status.value)
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    task = await get_owned(
        session, Task, parse_uuid(task_id, "task"), current_user.id, "Task"
    )
    await session.delete(task)
    await session.commit()
    return MessageResponse(message="Task deleted successfully.")
