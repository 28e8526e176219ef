"""Task domain models."""

import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, Text, Uuid

from core.database import Base
from core.dates import utcnow
from domain.common import WorkStatus, enum_values


class Task(Base):
    """A unit of work, optionally attached to a project."""

    __tablename__ = "tasks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(WorkStatus, name="taskStatus", values_callable=enum_values),
        nullable=False,
        default=WorkStatus.todo,
    )
    # low / medium / high, validated by the API
    priority = Column(String(50), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_project", "project_id"),
    )
