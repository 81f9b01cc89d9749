from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base

MEMBER_GENDERS = ("MALE", "FEMALE", "OTHER")
MemberGender = Enum(*MEMBER_GENDERS, name="member_gender")


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(25), nullable=True)
    age = Column(Integer, nullable=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(MemberGender, nullable=True)
    address = Column(String(255), nullable=True)
    occupation = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    join_date = Column(Date, default=date.today, nullable=True)
    cell_id = Column(Integer, ForeignKey("cells.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    cell = relationship("Cell", back_populates="members", foreign_keys=[cell_id])
    user = relationship("User", back_populates="member", foreign_keys=[user_id])
    ministry_memberships = relationship(
        "MemberMinistry",
        back_populates="member",
        cascade="all, delete-orphan",
    )
    contributions = relationship("Contribution", back_populates="member")
    registrations = relationship("EventRegistration", back_populates="member", cascade="all, delete-orphan")
    attendances = relationship("EventAttendance", back_populates="member", cascade="all, delete-orphan")
    audit_entries = relationship(
        "MemberAudit",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="[MemberAudit.changed_at.desc(), MemberAudit.id.desc()]",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def active_ministries(self):
        return [membership.ministry for membership in self.ministry_memberships if membership.is_active]

    def effective_age(self, today: date | None = None) -> int | None:
        """Stored age when present, otherwise derived from the birth date."""

        if self.age is not None:
            return self.age
        if self.birth_date is None:
            return None
        today = today or date.today()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years
