from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, and_, or_
from sqlalchemy.orm import relationship

from app.core.db import Base

ANNOUNCEMENT_PRIORITIES = ("low", "normal", "high", "urgent")
ANNOUNCEMENT_AUDIENCES = ("all", "members", "leaders", "youth", "children", "women", "men")

AnnouncementPriority = Enum(*ANNOUNCEMENT_PRIORITIES, name="announcement_priority")
AnnouncementAudience = Enum(*ANNOUNCEMENT_AUDIENCES, name="announcement_audience")


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(AnnouncementPriority, nullable=False, default="normal")
    target_audience = Column(AnnouncementAudience, nullable=False, default="all")
    publish_date = Column(DateTime, nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    author_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    author = relationship("Member")

    @classmethod
    def visible_clause(cls, now: datetime):
        """Filter for announcements the public can currently see."""

        return and_(
            cls.is_published.is_(True),
            cls.is_active.is_(True),
            or_(cls.publish_date.is_(None), cls.publish_date <= now),
            or_(cls.expiry_date.is_(None), cls.expiry_date >= now),
        )
