import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from docsense.core.time import utcnow
from docsense.db.base import Base


class DownloadStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


ACTIVE_STATUSES = (DownloadStatus.PENDING, DownloadStatus.APPROVED)


def active_key_for(document_id: str, requester_id: str) -> str:
    return f"{document_id}:{requester_id}"


class DownloadRequest(Base):
    __tablename__ = "download_requests"
    __table_args__ = (
        Index("ix_download_requests_document_requester", "document_id", "requester_id"),
        Index("ix_download_requests_status_created", "status", "created_at_utc"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    requester_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(DownloadStatus), default=DownloadStatus.PENDING, nullable=False)
    request_reason = Column(Text, nullable=False)

    # Set while pending or approved, cleared once terminal. Unique, so a
    # (document, requester) pair can hold only one active request.
    active_key = Column(String(80), unique=True, nullable=True)

    approver_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at_utc = Column(DateTime(timezone=True), nullable=True)
    rejected_at_utc = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=False, default="")

    download_token = Column(String(64), unique=True, nullable=True)
    request_expires_at_utc = Column(DateTime(timezone=True), nullable=True)
    token_expires_at_utc = Column(DateTime(timezone=True), nullable=True)
    downloaded_at_utc = Column(DateTime(timezone=True), nullable=True)
    download_count = Column(Integer, default=0, nullable=False)
    max_downloads = Column(Integer, default=1, nullable=False)

    ip_address = Column(String(45), nullable=False, default="")  # IPv4/IPv6
    user_agent = Column(Text, nullable=False, default="")
    created_at_utc = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    document = relationship("Document", back_populates="download_requests")
    requester = relationship("User", foreign_keys=[requester_id])
    approver = relationship("User", foreign_keys=[approver_id])

    @property
    def download_expires_at_utc(self):
        """Token expiry once approved, pending-request expiry before that."""
        if self.approved_at_utc is not None:
            return self.token_expires_at_utc
        return self.request_expires_at_utc
