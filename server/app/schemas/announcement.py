from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import PageMeta, PartialUpdate, strip_text, to_naive_utc
from app.schemas.ministry import MemberSummary

Priority = Literal["low", "normal", "high", "urgent"]
Audience = Literal["all", "members", "leaders", "youth", "children", "women", "men"]


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    content: str = Field(..., min_length=10, max_length=5000)
    priority: Priority = "normal"
    target_audience: Audience = "all"
    publish_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_published: bool = False
    author_id: Optional[int] = Field(None, ge=1)
    attachments: List[str] = Field(default_factory=list, max_length=20)

    @validator("title", "content", pre=True)
    def strip_whitespace(cls, value):
        return strip_text(value)

    @validator("publish_date", "expiry_date")
    def normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class AnnouncementUpdate(PartialUpdate):
    required_fields = ("title", "content", "priority", "target_audience", "is_published", "is_active", "attachments")

    title: Optional[str] = Field(None, min_length=2, max_length=200)
    content: Optional[str] = Field(None, min_length=10, max_length=5000)
    priority: Optional[Priority] = None
    target_audience: Optional[Audience] = None
    publish_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_published: Optional[bool] = None
    is_active: Optional[bool] = None
    author_id: Optional[int] = Field(None, ge=1)
    attachments: Optional[List[str]] = Field(None, max_length=20)

    @validator("title", "content", pre=True)
    def strip_whitespace(cls, value):
        return strip_text(value)

    @validator("publish_date", "expiry_date")
    def normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class AnnouncementOut(BaseModel):
    id: int
    title: str
    content: str
    priority: str
    target_audience: str
    publish_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    is_published: bool
    is_active: bool
    author_id: Optional[int] = None
    author: Optional[MemberSummary] = None
    attachments: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AnnouncementListResponse(PageMeta):
    items: List[AnnouncementOut]


class AnnouncementSearchResponse(BaseModel):
    items: List[AnnouncementOut]
    search_term: str
    count: int


class PriorityCount(BaseModel):
    priority: str
    count: int


class AudienceCount(BaseModel):
    audience: str
    count: int


class AnnouncementStats(BaseModel):
    total: int
    published: int
    active: int
    expired: int
    draft: int
    by_priority: List[PriorityCount]
    by_audience: List[AudienceCount]
