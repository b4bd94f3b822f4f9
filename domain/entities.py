"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, model_validator
from uuid import UUID, uuid4
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from decimal import Decimal

from domain.enums import (
    ReservationStatus, PaymentStatus, TransactionType, TransactionStatus, NotificationType
)
from domain.exceptions import (
    InvalidStateTransition, PaymentRequired, PropertyAtCapacity, InvalidDateRange, AlreadyPaid
)
from domain.value_objects import CENTS, DateRange, ensure_utc, to_money


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Property(BaseModel):
    """Property Aggregate Root - the capacity view a reservation books against"""

    # Identity
    property_id: UUID = Field(default_factory=uuid4)
    landlord_id: UUID
    title: str = ""

    # Pricing
    price: Decimal = Field(gt=0)
    deposit: Optional[Decimal] = Field(default=None, gt=0)

    # Capacity Tracking
    max_occupancy: int = Field(gt=0)
    current_occupancy: int = Field(ge=0, default=0)

    # Metadata
    last_updated: datetime = Field(default_factory=utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    @model_validator(mode='after')
    def check_invariants(self):
        if self.current_occupancy > self.max_occupancy:
            raise ValueError('Current occupancy cannot exceed max occupancy')
        if self.deposit is not None and self.deposit > self.price:
            raise ValueError('Deposit cannot exceed the monthly price')
        return self

    # ==================== COMPUTED PROPERTIES ====================
    @property
    def available_slots(self) -> int:
        return self.max_occupancy - self.current_occupancy

    @property
    def is_at_capacity(self) -> bool:
        return self.current_occupancy >= self.max_occupancy

    def has_capacity(self) -> bool:
        return not self.is_at_capacity

    def deposit_for(self, multiplier: Decimal = Decimal("1")) -> Decimal:
        """Deposit charged at booking; falls back to price x multiplier, capped at the price.

        Never below one cent, so a tiny multiplier cannot produce a zero deposit.
        """
        if self.deposit is not None:
            deposit = to_money(self.deposit)
        else:
            deposit = to_money(min(self.price * Decimal(str(multiplier)), self.price))
        return max(deposit, CENTS)

    # ==================== KEY METHODS ====================
    def reserve_slot(self) -> None:
        """Take one occupancy slot"""
        if self.is_at_capacity:
            raise PropertyAtCapacity(self.property_id)

        self.current_occupancy += 1
        self.last_updated = utcnow()
        self.version += 1

    def release_slot(self) -> None:
        """Give back one occupancy slot, never going below zero"""
        self.current_occupancy = max(0, self.current_occupancy - 1)
        self.last_updated = utcnow()
        self.version += 1


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    property_id: UUID
    tenant_id: UUID
    landlord_id: UUID

    # Value Objects
    date_range: DateRange
    total_amount: Decimal = Field(gt=0)
    deposit_amount: Decimal = Field(gt=0)

    # Enums/Status
    status: ReservationStatus = ReservationStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    cancellation_reason: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    @model_validator(mode='after')
    def deposit_within_total(self):
        if self.deposit_amount > self.total_amount:
            raise ValueError('Deposit amount cannot exceed total amount')
        return self

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        property: Property,
        tenant_id: UUID,
        date_range: DateRange,
        now: datetime,
        deposit_multiplier: Decimal = Decimal("1")
    ) -> "Reservation":
        """Create new pending reservation priced from the property"""
        now = ensure_utc(now)
        Reservation._validate_date_range(date_range, now)

        return Reservation(
            property_id=property.property_id,
            tenant_id=tenant_id,
            landlord_id=property.landlord_id,
            date_range=date_range,
            total_amount=to_money(property.price),
            deposit_amount=property.deposit_for(deposit_multiplier),
            status=ReservationStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def mark_paid(self, now: datetime) -> None:
        """Record that the deposit was collected"""
        if self.payment_status == PaymentStatus.PAID:
            raise AlreadyPaid(self.reservation_id)

        if self.status != ReservationStatus.PENDING or self.payment_status != PaymentStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot process payment for reservation with status {self.status.value}"
            )

        self.payment_status = PaymentStatus.PAID
        self._touch(now)

    def confirm(self, now: datetime) -> None:
        """Confirm reservation after payment"""
        if self.status != ReservationStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot confirm reservation with status {self.status.value}"
            )

        if self.payment_status != PaymentStatus.PAID:
            raise PaymentRequired("Deposit must be paid before the reservation can be confirmed")

        self.status = ReservationStatus.CONFIRMED
        self._touch(now)

    def cancel(self, reason: str, now: datetime) -> ReservationStatus:
        """Cancel reservation; returns the status it was cancelled from"""
        if not self.is_cancellable():
            raise InvalidStateTransition(
                f"Cannot cancel reservation with status {self.status.value}"
            )

        previous = self.status
        self.status = ReservationStatus.CANCELLED
        self.cancellation_reason = reason
        self._touch(now)
        return previous

    def mark_refunded(self, now: datetime) -> None:
        """Record that (part of) the deposit went back to the tenant"""
        if self.payment_status != PaymentStatus.PAID:
            raise InvalidStateTransition(
                f"Cannot refund reservation with payment status {self.payment_status.value}"
            )

        self.payment_status = PaymentStatus.REFUNDED
        self._touch(now)

    def complete(self, now: datetime) -> None:
        """Close out a confirmed stay once it has ended"""
        if self.status != ReservationStatus.CONFIRMED:
            raise InvalidStateTransition(
                f"Cannot complete reservation with status {self.status.value}"
            )

        if not self.date_range.ends_by(now):
            raise InvalidStateTransition("Cannot complete reservation before the stay has ended")

        self.status = ReservationStatus.COMPLETED
        self._touch(now)

    # ==================== QUERY METHODS ====================
    @property
    def start_date(self) -> datetime:
        return self.date_range.start_date

    @property
    def end_date(self) -> Optional[datetime]:
        return self.date_range.end_date

    def is_cancellable(self) -> bool:
        return not self.is_terminal()

    def is_terminal(self) -> bool:
        return self.status in [ReservationStatus.CANCELLED, ReservationStatus.COMPLETED]

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.tenant_id, self.landlord_id)

    # ==================== PRIVATE METHODS ====================
    @staticmethod
    def _validate_date_range(date_range: DateRange, now: datetime) -> None:
        if date_range.start_date <= now:
            raise InvalidDateRange("Start date must be in the future")

        if date_range.end_date is not None and date_range.end_date <= date_range.start_date:
            raise InvalidDateRange("End date must be after start date")

    def _touch(self, now: datetime) -> None:
        # updated_at never moves backwards
        self.updated_at = max(self.updated_at, ensure_utc(now))
        self.version += 1


class Transaction(BaseModel):
    """Ledger entry for a single monetary movement"""

    transaction_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    user_id: UUID

    transaction_type: TransactionType
    amount: Decimal = Field(gt=0)
    status: TransactionStatus = TransactionStatus.PENDING

    payment_method: str
    payment_reference: Optional[str] = None
    transaction_date: datetime = Field(default_factory=utcnow)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    @staticmethod
    def open(
        reservation_id: UUID,
        user_id: UUID,
        transaction_type: TransactionType,
        amount: Decimal,
        payment_method: str,
        now: datetime,
        payment_reference: Optional[str] = None
    ) -> "Transaction":
        """Start a pending transaction"""
        now = ensure_utc(now)
        return Transaction(
            reservation_id=reservation_id,
            user_id=user_id,
            transaction_type=transaction_type,
            amount=to_money(amount),
            payment_method=payment_method,
            payment_reference=payment_reference,
            transaction_date=now,
            created_at=now,
            updated_at=now
        )

    def complete(self, now: datetime, payment_reference: Optional[str] = None) -> None:
        self._settle(TransactionStatus.COMPLETED, now, payment_reference)

    def fail(self, now: datetime, payment_reference: Optional[str] = None) -> None:
        self._settle(TransactionStatus.FAILED, now, payment_reference)

    def is_settled(self) -> bool:
        return self.status != TransactionStatus.PENDING

    def _settle(self, status: TransactionStatus, now: datetime, payment_reference: Optional[str]) -> None:
        # status leaves pending exactly once
        if self.is_settled():
            raise InvalidStateTransition(
                f"Transaction {self.transaction_id} is already {self.status.value}"
            )

        self.status = status
        if payment_reference:
            self.payment_reference = payment_reference
        self.updated_at = max(self.updated_at, ensure_utc(now))


class Notification(BaseModel):
    """A message stored for a user"""

    notification_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    notification_type: NotificationType
    title: str
    message: str
    is_read: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    def mark_read(self) -> None:
        self.is_read = True
