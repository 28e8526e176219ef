"""Client domain models."""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Uuid

from core.database import Base
from core.dates import utcnow
from domain.common import enum_values


class ClientType(str, enum.Enum):
    """Kind of client."""

    person = "person"
    company = "company"


class Client(Base):
    """A customer engagement; ``value`` is in integer cents."""

    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    name = Column(String(255), nullable=False)
    type = Column(
        Enum(ClientType, name="clientType", values_callable=enum_values),
        nullable=False,
    )
    value = Column(Integer, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("ix_clients_user_created", "user_id", "created_at"),)
