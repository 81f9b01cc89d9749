from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.db import Base

CONTRIBUTION_TYPES = ("TITHE", "OFFERING", "SPECIAL", "BUILDING_FUND", "MISSION", "OTHER")
PAYMENT_METHODS = ("CASH", "CHEQUE", "BANK_TRANSFER", "CARD", "MOBILE_MONEY", "OTHER")

ContributionType = Enum(*CONTRIBUTION_TYPES, name="contribution_type")
PaymentMethod = Enum(*PAYMENT_METHODS, name="contribution_payment_method")


class Contribution(Base):
    __tablename__ = "contributions"

    id = Column(Integer, primary_key=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(ContributionType, nullable=False)
    date = Column(Date, default=date.today, nullable=False, index=True)
    payment_method = Column(PaymentMethod, nullable=False, default="CASH")
    notes = Column(String(500), nullable=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    recorded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="contributions")
    recorded_by = relationship("User")
