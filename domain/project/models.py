"""Project domain models."""

import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, Text, Uuid

from core.database import Base
from core.dates import utcnow
from domain.common import Priority, WorkStatus, enum_values


class Project(Base):
    """User project grouping tasks and files."""

    __tablename__ = "projects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(WorkStatus, name="projectStatus", values_callable=enum_values),
        nullable=False,
        default=WorkStatus.todo,
    )
    priority = Column(
        Enum(Priority, name="projectPriority", values_callable=enum_values),
        nullable=False,
        default=Priority.medium,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("ix_projects_user_created", "user_id", "created_at"),)
