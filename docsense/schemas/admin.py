from typing import List

from pydantic import BaseModel, Field

from .auth import UserOut


class UserStats(BaseModel):
    total: int
    approved: int
    pending: int
    rejected: int
    superusers: int


class UserListOut(BaseModel):
    users: List[UserOut]
    stats: UserStats


class PendingUsersOut(BaseModel):
    users: List[UserOut]
    count: int


class UserRoleUpdate(BaseModel):
    role: str = Field(..., min_length=1)
