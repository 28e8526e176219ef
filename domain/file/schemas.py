"""Stored file schemas."""

import uuid
from typing import List, Optional

from pydantic import field_validator

from core.dates import IsoDateTime
from core.ids import is_valid_uuid
from domain.common import ApiModel, SortOrder
from domain.file.models import ALLOWED_FILE_TYPES
from domain.validators import DESCRIPTION_MAX_LENGTH, optional_text

FILE_SORT_FIELDS = ("createdAt", "filename", "size", "mimeType")


def validate_file_description(value):
    return optional_text(value, "Description", DESCRIPTION_MAX_LENGTH)


def parse_file_project_id(value):
    """``None``, ``""``, ``"none"`` and ``"all"`` detach the file from any project."""
    if value is None or value in ("", "none", "all"):
        return None
    if isinstance(value, uuid.UUID):
        return value
    if not is_valid_uuid(value):
        raise ValueError("Invalid project id.")
    return value


class FileUpdateRequest(ApiModel):
    description: Optional[str] = None
    project_id: Optional[uuid.UUID] = None

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, v):
        return validate_file_description(v)

    @field_validator("project_id", mode="before")
    @classmethod
    def _validate_project_id(cls, v):
        return parse_file_project_id(v)


class FileListQuery(ApiModel):
    project_id: Optional[uuid.UUID] = None
    mime_type: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.desc

    @field_validator("project_id", mode="before")
    @classmethod
    def _validate_project_filter(cls, v):
        if v in ("", "all"):
            return None
        if not is_valid_uuid(v):
            raise ValueError("Invalid project filter.")
        return v

    @field_validator("mime_type", mode="before")
    @classmethod
    def _validate_mime_filter(cls, v):
        if v in ("", "all"):
            return None
        if v not in ALLOWED_FILE_TYPES:
            raise ValueError("Invalid MIME type filter.")
        return v

    @field_validator("sort_by")
    @classmethod
    def _validate_sort_by(cls, v):
        if v not in FILE_SORT_FIELDS:
            raise ValueError(f"sortBy must be one of: {', '.join(FILE_SORT_FIELDS)}.")
        return v


class FileResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    filename: str
    stored_filename: str
    mime_type: str
    size: int
    description: Optional[str] = None
    created_at: IsoDateTime


class FileEnvelope(ApiModel):
    file: FileResponse


class FileListResponse(ApiModel):
    files: List[FileResponse]
