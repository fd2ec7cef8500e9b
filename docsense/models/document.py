import enum
import uuid

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from docsense.core.time import utcnow
from docsense.db.base import Base


class DocumentStatus(str, enum.Enum):
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"
    ARCHIVED = "archived"


ALLOWED_FILE_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    filename = Column(String(255), unique=True, nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(10), nullable=False)
    mime_type = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    content = Column(Text, nullable=False, default="")
    uploaded_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(DocumentStatus), default=DocumentStatus.PROCESSING, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    download_count = Column(Integer, default=0, nullable=False)
    last_accessed_utc = Column(DateTime(timezone=True), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    # Security policy
    allow_download = Column(Boolean, default=False, nullable=False)
    allow_copy = Column(Boolean, default=False, nullable=False)
    allow_print = Column(Boolean, default=False, nullable=False)
    watermark = Column(String(255), nullable=False, default="")

    created_at_utc = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="documents")
    download_requests = relationship(
        "DownloadRequest", back_populates="document", cascade="all, delete-orphan", passive_deletes=True
    )
