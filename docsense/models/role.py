import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, String

from docsense.core.time import utcnow
from docsense.db.base import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(20), unique=True, nullable=False, index=True)
    display_name = Column(String(50), nullable=False)
    description = Column(String(200), nullable=True)
    permissions = Column(JSON, nullable=False, default=lambda: ["read"])
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    # system roles cannot be deleted
    is_system = Column(Boolean, default=False, nullable=False)
    created_at_utc = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
