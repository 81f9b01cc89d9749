from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.schemas.common import strip_text

SelfServiceRole = Literal["ADMIN", "LEADER", "MEMBER"]


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=25)
    role: SelfServiceRole = "MEMBER"

    @validator("name", pre=True)
    def strip_name(cls, value):
        return strip_text(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=25)
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[str] = Field(None, max_length=255)

    @validator("full_name", pre=True)
    def strip_full_name(cls, value):
        return strip_text(value)


class ProfileMinistry(BaseModel):
    id: int
    name: str
    role: str


class ProfileMember(BaseModel):
    id: int
    first_name: str
    last_name: str
    cell_id: Optional[int] = None
    cell_name: Optional[str] = None
    ministries: List[ProfileMinistry] = Field(default_factory=list)


class UserOut(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    is_active: bool
    roles: List[str]
    last_login_at: Optional[datetime] = None
    created_at: datetime


class ProfileOut(UserOut):
    member: Optional[ProfileMember] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    user: UserOut


class MeResponse(BaseModel):
    user: Optional[UserOut] = None


class ForgotPasswordResponse(BaseModel):
    detail: str
    reset_token: Optional[str] = None
