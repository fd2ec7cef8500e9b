from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class DownloadRequestCreate(BaseModel):
    reason: Optional[str] = None


class DownloadRequestCreated(BaseModel):
    requestId: str
    status: str


class DownloadStatusOut(BaseModel):
    status: str
    downloadToken: Optional[str] = None
    downloadCount: Optional[int] = None
    maxDownloads: Optional[int] = None
    rejectionReason: Optional[str] = None


class DecisionRequest(BaseModel):
    action: Literal["approve", "reject"]
    maxDownloads: Optional[int] = Field(None, ge=1)
    reason: Optional[str] = None


class DecisionOut(BaseModel):
    requestId: str
    status: str
    downloadToken: Optional[str] = None


class UserRef(BaseModel):
    id: str
    username: str
    email: str

    model_config = {"from_attributes": True}


class DocumentRef(BaseModel):
    id: str
    title: str
    fileType: str = Field(alias="file_type")
    uploadedBy: str = Field(alias="uploaded_by")

    model_config = {"from_attributes": True, "populate_by_name": True}


class DownloadRequestOut(BaseModel):
    id: str
    document: Optional[DocumentRef] = None
    requestedBy: Optional[UserRef] = Field(None, alias="requester")
    status: str
    requestReason: str = Field(alias="request_reason")
    createdAtUtc: datetime = Field(alias="created_at_utc")
    approvedBy: Optional[UserRef] = Field(None, alias="approver")
    approvedAtUtc: Optional[datetime] = Field(None, alias="approved_at_utc")
    downloadCount: int = Field(alias="download_count")
    maxDownloads: int = Field(alias="max_downloads")

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value):
        return getattr(value, "value", value)


class DownloadRequestPage(BaseModel):
    requests: List[DownloadRequestOut]
    currentPage: int
    totalPages: int
    totalRequests: int
