from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base


class Cell(Base):
    __tablename__ = "cells"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    number = Column(Integer, nullable=True)
    description = Column(String(500), nullable=True)
    meeting_day = Column(String(20), nullable=True)
    location = Column(String(200), nullable=True)
    leader_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL", use_alter=True, name="fk_cells_leader_id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    leader = relationship("Member", foreign_keys=[leader_id], post_update=True)
    members = relationship("Member", back_populates="cell", foreign_keys="Member.cell_id")
