from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditLogEntry(BaseModel):
    id: str
    at_utc: datetime
    action: str
    actor_user_id: Optional[str] = None
    document_id: Optional[str] = None
    request_id: Optional[str] = None
    details: Optional[str] = None

    model_config = {"from_attributes": True}


class AuditPage(BaseModel):
    items: list[AuditLogEntry]
    total: int
    page: int
    pageSize: int
