"""Project management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_session
from core.dates import utcnow
from core.exceptions import ObjectNotFoundError, StorageError
from core.ids import parse_uuid
from core.logging import get_logger
from core.queries import get_owned, ordering, parse_list_query, updated_fields
from domain.common import MessageResponse, Priority, WorkStatus
from domain.file.models import StoredFile
from domain.project.models import Project
from domain.project.schemas import (
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectEnvelope,
    ProjectListQuery,
    ProjectListResponse,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdateRequest,
)
from domain.task.models import Task
from domain.task.schemas import TaskResponse
from domain.user.models import User
from services.storage_service import StorageProvider, get_storage_provider

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """List the user's projects with task counts."""
    params = parse_list_query(
        ProjectListQuery,
        status=status_filter,
        priority=priority,
        sortBy=sort_by,
        sortOrder=sort_order,
    )

    task_count = func.count(Task.id).label("task_count")
    completed_task_count = func.coalesce(
        func.sum(case((Task.status == WorkStatus.done, 1), else_=0)), 0
    ).label("completed_task_count")

    query = (
        select(Project, task_count, completed_task_count)
        .outerjoin(
            Task,
            and_(Task.project_id == Project.id, Task.user_id == current_user.id),
        )
        .where(Project.user_id == current_user.id)
        .group_by(Project.id)
    )
    if params.status is not None:
        query = query.where(Project.status == params.status)
    if params.priority is not None:
        query = query.where(Project.priority == params.priority)

    sort_columns = {
        "createdAt": Project.created_at,
        "updatedAt": Project.updated_at,
        "name": Project.name,
        "taskCount": task_count,
        "status": Project.status,
        "priority": Project.priority,
    }
    query = query.order_by(
        *ordering(sort_columns[params.sort_by], params.sort_order, Project.id)
    )

    result = await session.execute(query)

    projects = []
    for project, count, completed in result.all():
        summary = ProjectSummaryResponse.model_validate(project)
        summary.task_count = int(count or 0)
        summary.completed_task_count = int(completed or 0)
        projects.append(summary)

    return ProjectListResponse(projects=projects)


@router.post("", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    project = Project(
        user_id=current_user.id,
        name=payload.name,
        description=payload.description,
        status=payload.status or WorkStatus.todo,
        priority=payload.priority or Priority.medium,
    )
    session.add(project)
    await session.commit()
    await session.refresh(project)

    logger.info("project_created", project_id=str(project.id))
    return ProjectEnvelope(project=ProjectResponse.model_validate(project))


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Project detail together with its tasks, newest first."""
    project = await get_owned(
        session, Project, parse_uuid(project_id, "project"), current_user.id, "Project"
    )

    result = await session.execute(
        select(Task)
        .where(Task.project_id == project.id, Task.user_id == current_user.id)
        .order_by(Task.created_at.desc(), Task.id.asc())
    )
    tasks = result.scalars().all()

    return ProjectDetailResponse(
        project=ProjectResponse.model_validate(project),
        tasks=[TaskResponse.model_validate(task) for task in tasks],
    )


@router.patch("/{project_id}", response_model=ProjectEnvelope)
async def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    project = await get_owned(
        session, Project, parse_uuid(project_id, "project"), current_user.id, "Project"
    )
    changes = updated_fields(payload)

    for field, value in changes.items():
        setattr(project, field, value)
    project.updated_at = utcnow()

    await session.commit()
    await session.refresh(project)
    return ProjectEnvelope(project=ProjectResponse.model_validate(project))


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Delete a project; its tasks and file rows cascade, their blobs are removed."""
    project = await get_owned(
        session, Project, parse_uuid(project_id, "project"), current_user.id, "Project"
    )

    result = await session.execute(
        select(StoredFile.stored_filename).where(
            StoredFile.project_id == project.id,
            StoredFile.user_id == current_user.id,
        )
    )
    blob_keys = result.scalars().all()

    await session.delete(project)
    await session.commit()

    for key in blob_keys:
        try:
            await storage.delete(key)
        except ObjectNotFoundError:
            pass
        except StorageError as e:
            # Row is gone; the blob is left orphaned
            logger.error("project_blob_delete_failed", key=key, error=e.message)

    logger.info("project_deleted", project_id=str(project.id), files=len(blob_keys))
    return MessageResponse(message="Project deleted successfully.")
