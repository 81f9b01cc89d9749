from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

MINISTRY_TYPES = ("WORSHIP", "YOUTH", "CHILDREN", "OUTREACH", "FELLOWSHIP", "SERVICE", "OTHER")
MINISTRY_MEMBER_ROLES = ("MEMBER", "LEADER", "ASSISTANT")

MinistryType = Enum(*MINISTRY_TYPES, name="ministry_type")
MinistryMemberRole = Enum(*MINISTRY_MEMBER_ROLES, name="ministry_member_role")


class Ministry(Base):
    __tablename__ = "ministries"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(140), unique=True, nullable=False)
    type = Column(MinistryType, nullable=False, default="OTHER")
    description = Column(Text, nullable=True)
    leader_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    meeting_schedule = Column(String(200), nullable=True)
    contact_info = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    leader = relationship("Member", foreign_keys=[leader_id])
    memberships = relationship("MemberMinistry", back_populates="ministry", cascade="all, delete-orphan")
    events = relationship("Event", back_populates="ministry")


class MemberMinistry(Base):
    __tablename__ = "member_ministries"
    __table_args__ = (UniqueConstraint("member_id", "ministry_id", name="uq_member_ministry"),)

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    ministry_id = Column(Integer, ForeignKey("ministries.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(MinistryMemberRole, nullable=False, default="MEMBER")
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="ministry_memberships")
    ministry = relationship("Ministry", back_populates="memberships")
