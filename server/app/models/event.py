from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

EVENT_TYPES = ("SERVICE", "CONFERENCE", "WORKSHOP", "FELLOWSHIP", "OUTREACH", "MEETING", "OTHER")
ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "LATE")

EventType = Enum(*EVENT_TYPES, name="event_type")
AttendanceStatus = Enum(*ATTENDANCE_STATUSES, name="event_attendance_status")


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(EventType, nullable=False, default="OTHER")
    date = Column(DateTime, nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=False)
    max_attendees = Column(Integer, nullable=True)
    registration_required = Column(Boolean, default=False, nullable=False)
    registration_deadline = Column(DateTime, nullable=True)
    organizer_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    ministry_id = Column(Integer, ForeignKey("ministries.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organizer = relationship("Member", foreign_keys=[organizer_id])
    ministry = relationship("Ministry", back_populates="events")
    registrations = relationship("EventRegistration", back_populates="event", cascade="all, delete-orphan")
    attendances = relationship("EventAttendance", back_populates="event", cascade="all, delete-orphan")


class EventRegistration(Base):
    __tablename__ = "event_registrations"
    __table_args__ = (UniqueConstraint("event_id", "member_id", name="uq_event_registration"),)

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="registrations")
    member = relationship("Member", back_populates="registrations")


class EventAttendance(Base):
    __tablename__ = "event_attendances"
    __table_args__ = (UniqueConstraint("event_id", "member_id", name="uq_event_attendance"),)

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(AttendanceStatus, nullable=False, default="PRESENT")
    notes = Column(String(500), nullable=True)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="attendances")
    member = relationship("Member", back_populates="attendances")
