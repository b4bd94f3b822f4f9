"""Domain Value Objects"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID
from typing import Optional

from domain.enums import TransactionType, TransactionStatus
from domain.exceptions import InvalidDateRange

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize an amount to cents"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_amount(amount: Decimal, symbol: str = "₱") -> str:
    """Format amount for display, e.g. ₱15,000.00"""
    return f"{symbol}{to_money(amount):,.2f}"


class DateRange(BaseModel):
    """Value Object for a stay: start date and optional end date"""
    start_date: datetime
    end_date: Optional[datetime] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_timezone(cls, v):
        return ensure_utc(v) if v is not None else v

    @field_validator('end_date')
    @classmethod
    def end_after_start(cls, v, info):
        start = info.data.get('start_date')
        if v is not None and start is not None and v <= start:
            raise ValueError('End date must be after start date')
        return v

    @classmethod
    def between(cls, start_date: datetime, end_date: Optional[datetime] = None) -> "DateRange":
        """Build a range, raising InvalidDateRange instead of a validation error"""
        start = ensure_utc(start_date)
        end = ensure_utc(end_date) if end_date is not None else None
        if end is not None and end <= start:
            raise InvalidDateRange("End date must be after start date")
        return cls(start_date=start, end_date=end)

    def ends_by(self, moment: datetime) -> bool:
        """Whether the stay is over at the given moment"""
        boundary = self.end_date or self.start_date
        return ensure_utc(moment) >= boundary

    class Config:
        frozen = True


class RefundPolicy(BaseModel):
    """Value Object for the deposit refund schedule"""
    policy_name: str = "Standard"
    full_refund_days: int = Field(default=7, ge=0)
    partial_refund_days: int = Field(default=3, ge=0)
    partial_refund_percentage: Decimal = Field(default=Decimal("50"), ge=0, le=100)

    @field_validator('partial_refund_days')
    @classmethod
    def partial_window_inside_full(cls, v, info):
        full = info.data.get('full_refund_days')
        if full is not None and v > full:
            raise ValueError('Partial refund window cannot exceed full refund window')
        return v

    class Config:
        frozen = True


class CancellationResult(BaseModel):
    """Outcome of a cancellation"""
    success: bool = True
    refund_amount: Decimal = Decimal("0.00")
    message: str

    class Config:
        frozen = True


class TransactionFilters(BaseModel):
    """Criteria for querying the ledger"""
    user_id: Optional[UUID] = None
    reservation_id: Optional[UUID] = None
    transaction_type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    payment_method: Optional[str] = None

    @field_validator('date_from', 'date_to')
    @classmethod
    def normalize_timezone(cls, v):
        return ensure_utc(v) if v is not None else v


class TransactionSummary(BaseModel):
    """Aggregated ledger totals"""
    total_transactions: int = 0
    total_amount: Decimal = Decimal("0.00")
    total_deposits: Decimal = Decimal("0.00")
    total_payments: Decimal = Decimal("0.00")
    total_refunds: Decimal = Decimal("0.00")
    pending_amount: Decimal = Decimal("0.00")
    completed_amount: Decimal = Decimal("0.00")
    failed_amount: Decimal = Decimal("0.00")
