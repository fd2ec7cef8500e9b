from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class DocumentSecurity(BaseModel):
    allowDownload: bool = Field(alias="allow_download")
    allowCopy: bool = Field(alias="allow_copy")
    allowPrint: bool = Field(alias="allow_print")
    watermark: str

    model_config = {"from_attributes": True, "populate_by_name": True}


class DocumentOut(BaseModel):
    id: str
    title: str
    originalName: str = Field(alias="original_name")
    fileType: str = Field(alias="file_type")
    mimeType: str = Field(alias="mime_type")
    fileSize: int = Field(alias="file_size")
    status: str
    isPublic: bool = Field(alias="is_public")
    uploadedBy: str = Field(alias="uploaded_by")
    downloadCount: int = Field(alias="download_count")
    lastAccessedUtc: Optional[datetime] = Field(None, alias="last_accessed_utc")
    tags: List[str] = []
    createdAtUtc: datetime = Field(alias="created_at_utc")

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value):
        return getattr(value, "value", value)


class DocumentDetail(DocumentOut):
    security: DocumentSecurity
    canDownloadDirectly: bool = False


class DocumentPage(BaseModel):
    documents: List[DocumentOut]
    total: int
    page: int
    totalPages: int
    hasNext: bool
    hasPrev: bool
