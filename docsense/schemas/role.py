from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Permission = Literal["read", "write", "delete", "admin", "moderate"]


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=20)
    display_name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    permissions: Optional[List[Permission]] = None


class RoleUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    permissions: Optional[List[Permission]] = None
    is_active: Optional[bool] = None


class RoleOut(BaseModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    permissions: List[str]
    is_active: bool
    is_system: bool
    user_count: int
    can_be_deleted: bool
    created_at_utc: datetime
