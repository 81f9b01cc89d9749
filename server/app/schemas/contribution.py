from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.common import PageMeta, PartialUpdate
from app.schemas.ministry import MemberSummary

ContributionType = Literal["TITHE", "OFFERING", "SPECIAL", "BUILDING_FUND", "MISSION", "OTHER"]
PaymentMethod = Literal["CASH", "CHEQUE", "BANK_TRANSFER", "CARD", "MOBILE_MONEY", "OTHER"]
PeriodGrouping = Literal["day", "month", "quarter", "year"]


def _validate_amount(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None:
        return None
    if value <= 0:
        raise ValueError("Amount must be greater than zero")
    return value.quantize(Decimal("0.01"))


class ContributionCreate(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    type: ContributionType
    date: Optional[date_type] = None
    payment_method: PaymentMethod = "CASH"
    notes: Optional[str] = Field(None, max_length=500)
    member_id: Optional[int] = Field(None, ge=1)
    is_anonymous: bool = False

    @validator("amount")
    def validate_amount(cls, value: Decimal) -> Decimal:
        return _validate_amount(value)


class ContributionUpdate(PartialUpdate):
    required_fields = ("amount", "type", "date", "payment_method", "is_anonymous")

    amount: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
    type: Optional[ContributionType] = None
    date: Optional[date_type] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=500)
    member_id: Optional[int] = Field(None, ge=1)
    is_anonymous: Optional[bool] = None

    @validator("amount")
    def validate_amount(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _validate_amount(value)


class ContributionOut(BaseModel):
    id: int
    amount: Decimal
    type: str
    date: date_type
    payment_method: str
    notes: Optional[str] = None
    member_id: Optional[int] = None
    member: Optional[MemberSummary] = None
    is_anonymous: bool
    recorded_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AmountSummary(BaseModel):
    total_amount: Decimal
    average_amount: Decimal


class ContributionListResponse(PageMeta):
    items: List[ContributionOut]
    summary: AmountSummary


class MemberContributionSummary(BaseModel):
    total_amount: Decimal
    total_contributions: int
    average_amount: Decimal


class MemberContributionHistory(PageMeta):
    member: MemberSummary
    items: List[ContributionOut]
    summary: MemberContributionSummary


class StatsSummary(BaseModel):
    total_amount: Decimal
    total_count: int
    average_amount: Decimal
    max_amount: Decimal
    min_amount: Decimal


class TypeTotal(BaseModel):
    type: str
    total_amount: Decimal
    count: int


class MethodTotal(BaseModel):
    method: str
    total_amount: Decimal
    count: int


class PeriodTotal(BaseModel):
    period: str
    total_amount: Decimal
    count: int
    average_amount: Decimal


class ContributionStats(BaseModel):
    group_by: PeriodGrouping
    summary: StatsSummary
    by_type: List[TypeTotal]
    by_payment_method: List[MethodTotal]
    trends: List[PeriodTotal]


class ContributionExportResponse(BaseModel):
    items: List[dict]
    count: int
