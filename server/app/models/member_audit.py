from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base


class MemberAudit(Base):
    """One changed field on a member, written by member updates and deactivations."""

    __tablename__ = "member_audit"
    __table_args__ = (Index("ix_member_audit_member_changed", "member_id", "changed_at"),)

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    field = Column(String(100), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="audit_entries")
    changed_by = relationship("User", back_populates="member_audits")

    @property
    def changed_by_email(self) -> str | None:
        return self.changed_by.email if self.changed_by else None
