from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import PageMeta, PartialUpdate, strip_text

MinistryType = Literal["WORSHIP", "YOUTH", "CHILDREN", "OUTREACH", "FELLOWSHIP", "SERVICE", "OTHER"]
MinistryRole = Literal["MEMBER", "LEADER", "ASSISTANT"]


class MinistryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    type: MinistryType = "OTHER"
    description: Optional[str] = Field(None, max_length=1000)
    leader_id: Optional[int] = Field(None, ge=1)
    meeting_schedule: Optional[str] = Field(None, max_length=200)
    contact_info: Optional[str] = Field(None, max_length=200)

    @validator("name", pre=True)
    def strip_name(cls, value):
        return strip_text(value)


class MinistryUpdate(PartialUpdate):
    required_fields = ("name", "type", "is_active")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[MinistryType] = None
    description: Optional[str] = Field(None, max_length=1000)
    leader_id: Optional[int] = Field(None, ge=1)
    meeting_schedule: Optional[str] = Field(None, max_length=200)
    contact_info: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None

    @validator("name", pre=True)
    def strip_name(cls, value):
        return strip_text(value)


class MemberSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class MinistryOut(BaseModel):
    id: int
    name: str
    slug: str
    type: str
    description: Optional[str] = None
    leader_id: Optional[int] = None
    leader: Optional[MemberSummary] = None
    meeting_schedule: Optional[str] = None
    contact_info: Optional[str] = None
    is_active: bool
    member_count: int = 0
    event_count: int = 0
    created_at: datetime
    updated_at: datetime


class MinistryMemberOut(BaseModel):
    member: MemberSummary
    role: str
    is_active: bool
    joined_at: datetime


class MinistryEventRef(BaseModel):
    id: int
    title: str
    type: str
    date: datetime
    location: str

    class Config:
        from_attributes = True


class MinistryDetail(MinistryOut):
    members: List[MinistryMemberOut] = Field(default_factory=list)
    events: List[MinistryEventRef] = Field(default_factory=list)


class MinistryListResponse(PageMeta):
    items: List[MinistryOut]


class MinistryMemberListResponse(PageMeta):
    items: List[MinistryMemberOut]


class MinistryMemberAdd(BaseModel):
    member_id: int = Field(..., ge=1)
    role: MinistryRole = "MEMBER"


class MinistryMemberRoleUpdate(BaseModel):
    role: MinistryRole


class MinistryTypeCount(BaseModel):
    type: str
    count: int


class MinistryMembershipCount(BaseModel):
    ministry_id: int
    ministry_name: str
    member_count: int


class MinistryStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: List[MinistryTypeCount]
    membership: List[MinistryMembershipCount]
