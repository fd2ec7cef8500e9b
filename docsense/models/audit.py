import uuid

from sqlalchemy import Column, DateTime, String, Text

from docsense.core.time import utcnow
from docsense.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    at_utc = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    action = Column(String(64), nullable=False)
    # plain columns so the trail outlives deleted users/documents
    actor_user_id = Column(String(36), nullable=True, index=True)
    document_id = Column(String(36), nullable=True)
    request_id = Column(String(36), nullable=True)
    details = Column(Text, nullable=True)
