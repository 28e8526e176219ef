"""File upload and management endpoints."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from core.auth import get_current_user
from core.database import get_session
from core.exceptions import (
    DatabaseError,
    ObjectNotFoundError,
    PayloadTooLargeError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
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
from domain.file.models import ALLOWED_FILE_TYPES, StoredFile
from domain.file.schemas import (
    FileEnvelope,
    FileListQuery,
    FileListResponse,
    FileResponse,
    FileUpdateRequest,
    parse_file_project_id,
    validate_file_description,
)
from domain.user.models import User
from services.storage_service import (
    StorageProvider,
    generate_unique_filename,
    get_storage_provider,
)

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter()


def content_disposition(filename: str) -> str:
    """``attachment`` header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_")
    if fallback == filename:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.get("", response_model=FileListResponse)
async def list_files(
    project_id: Optional[str] = Query(None, alias="projectId"),
    mime_type: Optional[str] = Query(None, alias="mimeType"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    params = parse_list_query(
        FileListQuery,
        projectId=project_id,
        mimeType=mime_type,
        sortBy=sort_by,
        sortOrder=sort_order,
    )

    query = select(StoredFile).where(StoredFile.user_id == current_user.id)
    if params.project_id is not None:
        query = query.where(StoredFile.project_id == params.project_id)
    if params.mime_type is not None:
        query = query.where(StoredFile.mime_type == params.mime_type)

    sort_columns = {
        "createdAt": StoredFile.created_at,
        "filename": StoredFile.filename,
        "size": StoredFile.size,
        "mimeType": StoredFile.mime_type,
    }
    query = query.order_by(
        *ordering(sort_columns[params.sort_by], params.sort_order, StoredFile.id)
    )

    result = await session.execute(query)
    return FileListResponse(
        files=[FileResponse.model_validate(f) for f in result.scalars().all()]
    )


@router.post("", response_model=FileEnvelope, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    project_id: Optional[str] = Form(None, alias="projectId"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """
    Upload a file and record its metadata.

    Order matters: everything that can be rejected is checked before the
    bytes reach the object store, so a rejected request leaves no blob.
    """
    if file is None:
        raise ValidationError("Invalid file upload payload.", field="file")

    filename = file.filename or "file"
    content_type = file.content_type or ""
    if content_type not in ALLOWED_FILE_TYPES:
        raise ValidationError("File type not allowed.", field="file")

    max_size = settings.max_upload_size_bytes
    content = await file.read(max_size + 1)
    if len(content) == 0:
        raise ValidationError("Empty files are not allowed.", field="file")
    if len(content) > max_size:
        raise PayloadTooLargeError(limit=max_size)

    try:
        description = validate_file_description(description)
        project_uuid = parse_file_project_id(project_id)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    if project_uuid is not None:
        project_uuid = parse_uuid(project_uuid, "project")
        await ensure_project_owned(session, project_uuid, current_user.id)

    stored_filename = generate_unique_filename(filename)
    await storage.upload(stored_filename, content, content_type)

    record = StoredFile(
        user_id=current_user.id,
        project_id=project_uuid,
        filename=filename[:255],
        stored_filename=stored_filename,
        mime_type=content_type,
        size=len(content),
        description=description,
    )
    try:
        session.add(record)
        await session.commit()
        await session.refresh(record)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("file_metadata_insert_failed", key=stored_filename, error=str(e))
        try:
            await storage.delete(stored_filename)
        except StorageError as cleanup_error:
            logger.warning(
                "orphaned_blob", key=stored_filename, error=cleanup_error.message
            )
        raise DatabaseError("Failed to save file metadata.") from e

    logger.info(
        "file_uploaded",
        file_id=str(record.id),
        mime_type=content_type,
        size=len(content),
    )
    return FileEnvelope(file=FileResponse.model_validate(record))


@router.get("/{file_id}")
async def download_file(
    file_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Stream the stored bytes as an attachment."""
    record = await get_owned(
        session, StoredFile, parse_uuid(file_id, "file"), current_user.id, "File"
    )

    try:
        stored = await storage.download(record.stored_filename)
    except ObjectNotFoundError:
        raise ResourceNotFoundError(
            "File", message="File not found in cloud storage."
        ) from None

    return StreamingResponse(
        stored.body,
        media_type=record.mime_type,
        headers={
            "Content-Disposition": content_disposition(record.filename),
            "Content-Length": str(record.size),
        },
    )


@router.patch("/{file_id}", response_model=FileEnvelope)
async def update_file(
    file_id: str,
    payload: FileUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Update description and project link; the blob itself is immutable."""
    record = await get_owned(
        session, StoredFile, parse_uuid(file_id, "file"), current_user.id, "File"
    )
    changes = updated_fields(payload)

    if changes.get("project_id") is not None:
        await ensure_project_owned(session, changes["project_id"], current_user.id)

    for field, value in changes.items():
        setattr(record, field, value)

    await session.commit()
    await session.refresh(record)
    return FileEnvelope(file=FileResponse.model_validate(record))


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage_provider),
):
    record = await get_owned(
        session, StoredFile, parse_uuid(file_id, "file"), current_user.id, "File"
    )

    try:
        await storage.delete(record.stored_filename)
    except ObjectNotFoundError:
        pass
    except StorageError as e:
        raise StorageError("Failed to delete file from cloud storage.") from e

    await session.delete(record)
    await session.commit()

    logger.info("file_deleted", file_id=str(record.id))
    return MessageResponse(message="File deleted successfully.")
