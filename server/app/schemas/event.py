from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import PageMeta, PartialUpdate, strip_text, to_naive_utc
from app.schemas.ministry import MemberSummary

EventType = Literal["SERVICE", "CONFERENCE", "WORKSHOP", "FELLOWSHIP", "OUTREACH", "MEETING", "OTHER"]
AttendanceStatus = Literal["PRESENT", "ABSENT", "LATE"]

_DATETIME_FIELDS = ("date", "start_time", "end_time", "registration_deadline")


class EventCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    type: EventType = "OTHER"
    date: datetime
    start_time: datetime
    end_time: datetime
    location: str = Field(..., min_length=2, max_length=200)
    max_attendees: Optional[int] = Field(None, ge=1)
    registration_required: bool = False
    registration_deadline: Optional[datetime] = None
    organizer_id: Optional[int] = Field(None, ge=1)
    ministry_id: Optional[int] = Field(None, ge=1)

    @validator("title", "location", pre=True)
    def strip_whitespace(cls, value):
        return strip_text(value)

    @validator(*_DATETIME_FIELDS)
    def normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class EventUpdate(PartialUpdate):
    required_fields = ("title", "type", "date", "start_time", "end_time", "location", "registration_required", "is_active")

    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    type: Optional[EventType] = None
    date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=2, max_length=200)
    max_attendees: Optional[int] = Field(None, ge=1)
    registration_required: Optional[bool] = None
    registration_deadline: Optional[datetime] = None
    organizer_id: Optional[int] = Field(None, ge=1)
    ministry_id: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @validator("title", "location", pre=True)
    def strip_whitespace(cls, value):
        return strip_text(value)

    @validator(*_DATETIME_FIELDS)
    def normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class MinistryRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class EventOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    type: str
    date: datetime
    start_time: datetime
    end_time: datetime
    location: str
    max_attendees: Optional[int] = None
    registration_required: bool
    registration_deadline: Optional[datetime] = None
    organizer_id: Optional[int] = None
    organizer: Optional[MemberSummary] = None
    ministry_id: Optional[int] = None
    ministry: Optional[MinistryRef] = None
    is_active: bool
    registration_count: int = 0
    attendance_count: int = 0
    created_at: datetime
    updated_at: datetime


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    member: MemberSummary
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime


class AttendanceOut(BaseModel):
    id: int
    event_id: int
    member: MemberSummary
    status: str
    notes: Optional[str] = None
    recorded_at: datetime


class EventDetail(EventOut):
    registrations: List[RegistrationOut] = Field(default_factory=list)
    attendance: List[AttendanceOut] = Field(default_factory=list)


class EventListResponse(PageMeta):
    items: List[EventOut]


class RegistrationCreate(BaseModel):
    member_id: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class AttendanceCreate(BaseModel):
    member_id: int = Field(..., ge=1)
    status: AttendanceStatus = "PRESENT"
    notes: Optional[str] = Field(None, max_length=500)


class EventTypeCount(BaseModel):
    type: str
    count: int


class MonthlyCount(BaseModel):
    month: str
    count: int


class EventStats(BaseModel):
    total: int
    active: int
    upcoming: int
    past: int
    by_type: List[EventTypeCount]
    monthly_trends: List[MonthlyCount]

