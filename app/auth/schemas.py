from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.core.enums import AppRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileInfo(BaseModel):
    id: UUID
    user_id: UUID
    email: EmailStr
    full_name: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    must_change_password: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: AppRole
    must_change_password: bool
    profile: ProfileInfo
    issued_at: datetime


class MeResponse(BaseModel):
    role: AppRole
    profile: ProfileInfo


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)

    @model_validator(mode="after")
    def validate_passwords(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("new_password and confirm_password do not match")
        if self.new_password == self.current_password:
            raise ValueError("New password must differ from the current password")
        return self


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for role checks and scoping."""

    id: UUID
    role: AppRole
    must_change_password: bool = False
