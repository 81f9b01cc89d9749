from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import PageMeta, PartialUpdate, strip_text

MEETING_DAYS = {"MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"}


def _validate_meeting_day(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in MEETING_DAYS:
        raise ValueError("Meeting day must be a day of the week")
    return normalized


class CellCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    number: Optional[int] = Field(None, ge=1)
    description: Optional[str] = Field(None, max_length=500)
    meeting_day: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    leader_id: Optional[int] = Field(None, ge=1)

    @validator("name", pre=True)
    def strip_name(cls, value):
        return strip_text(value)

    @validator("meeting_day")
    def validate_meeting_day(cls, value: Optional[str]) -> Optional[str]:
        return _validate_meeting_day(value)


class CellUpdate(PartialUpdate):
    required_fields = ("name", "is_active")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    number: Optional[int] = Field(None, ge=1)
    description: Optional[str] = Field(None, max_length=500)
    meeting_day: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    leader_id: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @validator("name", pre=True)
    def strip_name(cls, value):
        return strip_text(value)

    @validator("meeting_day")
    def validate_meeting_day(cls, value: Optional[str]) -> Optional[str]:
        return _validate_meeting_day(value)


class CellOut(BaseModel):
    id: int
    name: str
    number: Optional[int] = None
    description: Optional[str] = None
    meeting_day: Optional[str] = None
    location: Optional[str] = None
    leader_id: Optional[int] = None
    leader_name: Optional[str] = None
    is_active: bool
    member_count: int = 0
    created_at: datetime
    updated_at: datetime


class CellListResponse(PageMeta):
    items: List[CellOut]
