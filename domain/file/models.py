"""Stored file metadata models."""

import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, String, Text, Uuid

from core.database import Base
from core.dates import utcnow

# MIME types accepted for upload
ALLOWED_FILE_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "text/plain",
    "text/csv",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/zip",
)


class StoredFile(Base):
    """Metadata row for a blob held in the object store."""

    __tablename__ = "files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )

    # Display name as uploaded
    filename = Column(String(255), nullable=False)
    # Object store key
    stored_filename = Column(String(512), nullable=False, unique=True)
    mime_type = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_files_user_created", "user_id", "created_at"),
        Index("ix_files_project", "project_id"),
    )
