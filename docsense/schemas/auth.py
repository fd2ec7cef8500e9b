import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from docsense.core.roles import DEFAULT_ROLE

PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")


class UserOut(BaseModel):
    id: str
    username: str
    email: EmailStr
    phone: Optional[str] = None
    role: str
    is_approved: bool
    is_rejected: bool
    created_at_utc: datetime

    model_config = {"from_attributes": True}


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    phone: str
    role: str = DEFAULT_ROLE
    password: str = Field(..., min_length=6)
    password_confirm: str

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters long")
        return value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_RE.match(value.strip()):
            raise ValueError("Please enter a valid phone number")
        return value.strip()

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation does not match password")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: datetime


class LoginResponse(TokenPair):
    user: UserOut
