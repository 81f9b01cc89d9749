from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.schemas.common import DeletionResult, PageMeta, PartialUpdate, strip_text

MemberGender = Literal["MALE", "FEMALE", "OTHER"]
MinistryRole = Literal["MEMBER", "LEADER", "ASSISTANT"]


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class MemberBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=25)
    age: Optional[int] = Field(None, ge=1, le=150)
    birth_date: Optional[date] = None
    gender: Optional[MemberGender] = None
    address: Optional[str] = Field(None, max_length=255)
    occupation: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = Field(None, max_length=2000)
    join_date: Optional[date] = None
    cell_id: Optional[int] = Field(None, ge=1)

    @validator("first_name", "last_name", pre=True)
    def strip_names(cls, value):
        return strip_text(value)

    @validator("phone", "address", "occupation", "notes")
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)

    @validator("birth_date")
    def validate_birth_date(cls, value: Optional[date]) -> Optional[date]:
        if value and value > date.today():
            raise ValueError("Birth date cannot be in the future")
        return value


class MemberCreate(MemberBase):
    pass


class MemberUpdate(PartialUpdate):
    required_fields = ("first_name", "last_name")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=25)
    age: Optional[int] = Field(None, ge=1, le=150)
    birth_date: Optional[date] = None
    gender: Optional[MemberGender] = None
    address: Optional[str] = Field(None, max_length=255)
    occupation: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = Field(None, max_length=2000)
    join_date: Optional[date] = None
    cell_id: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @validator("first_name", "last_name", pre=True)
    def strip_names(cls, value):
        return strip_text(value)

    @validator("phone", "address", "occupation", "notes")
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _clean_optional(value)


class CellRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class MemberMinistryRef(BaseModel):
    id: int
    name: str
    role: str
    joined_at: datetime


class MemberOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    notes: Optional[str] = None
    join_date: Optional[date] = None
    cell_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MemberListItem(MemberOut):
    cell: Optional[CellRef] = None
    ministries: List[MemberMinistryRef] = Field(default_factory=list)


class MemberContributionRef(BaseModel):
    id: int
    amount: Decimal
    type: str
    date: date


class MemberAttendanceRef(BaseModel):
    event_id: int
    event_title: str
    status: str
    recorded_at: datetime


class MemberDetail(MemberListItem):
    recent_contributions: List[MemberContributionRef] = Field(default_factory=list)
    recent_attendance: List[MemberAttendanceRef] = Field(default_factory=list)


class MemberListResponse(PageMeta):
    items: List[MemberListItem]


class MemberDeletionResult(DeletionResult):
    pass


class MemberMinistryAssign(BaseModel):
    ministry_id: int = Field(..., ge=1)
    role: MinistryRole = "MEMBER"


class MemberAuditOut(BaseModel):
    id: int
    field: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by_id: Optional[int]
    changed_by_email: Optional[str] = None
    changed_at: datetime

    class Config:
        from_attributes = True


class GenderCount(BaseModel):
    gender: str
    count: int


class CellCount(BaseModel):
    cell_id: int
    cell_name: str
    count: int


class MinistryCount(BaseModel):
    ministry_id: int
    ministry_name: str
    count: int


class AgeGroupCount(BaseModel):
    age_group: str
    count: int


class MemberStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_gender: List[GenderCount]
    by_cell: List[CellCount]
    by_ministry: List[MinistryCount]
    by_age_group: List[AgeGroupCount]


class MemberExportResponse(BaseModel):
    items: List[dict]
    count: int
