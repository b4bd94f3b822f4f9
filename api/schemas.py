"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import Any, Dict, Optional

from domain.enums import TransactionStatus, UserRole


# ============================================================================
# PROPERTY SCHEMAS
# ============================================================================

class RegisterPropertyRequest(BaseModel):
    """Register property request DTO"""
    landlord_id: UUID
    title: str
    price: Decimal = Field(gt=0)
    deposit: Optional[Decimal] = Field(None, gt=0)
    max_occupancy: int = Field(gt=0)
    current_occupancy: int = Field(ge=0, default=0)


class AvailabilityResponse(BaseModel):
    """Property availability response DTO"""
    property_id: UUID
    landlord_id: UUID
    title: str
    price: Decimal
    deposit: Optional[Decimal] = None
    max_occupancy: int
    current_occupancy: int
    available_slots: int
    is_at_capacity: bool
    last_updated: datetime
    version: int


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    property_id: UUID
    tenant_id: UUID
    start_date: datetime
    end_date: Optional[datetime] = None


class ProcessPaymentRequest(BaseModel):
    """Deposit payment request DTO"""
    payment_method: str = Field(min_length=1)
    payment_reference: Optional[str] = None


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = "Tenant changed plans"


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    property_id: UUID
    tenant_id: UUID
    landlord_id: UUID
    start_date: datetime
    end_date: Optional[datetime] = None
    status: str
    payment_status: str
    total_amount: Decimal
    deposit_amount: Decimal
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    version: int


class CancellationResponse(BaseModel):
    """Cancellation outcome DTO"""
    success: bool
    refund_amount: Decimal
    message: str


# ============================================================================
# TRANSACTION SCHEMAS
# ============================================================================

class TransactionResponse(BaseModel):
    """Transaction response DTO"""
    transaction_id: UUID
    reservation_id: UUID
    user_id: UUID
    transaction_type: str
    amount: Decimal
    status: str
    payment_method: str
    payment_reference: Optional[str] = None
    transaction_date: datetime
    created_at: datetime
    updated_at: datetime


class UpdateTransactionStatusRequest(BaseModel):
    """Settle transaction request DTO"""
    status: TransactionStatus
    payment_reference: Optional[str] = None


class TransactionSummaryResponse(BaseModel):
    """Ledger summary DTO"""
    total_transactions: int
    total_amount: Decimal
    total_deposits: Decimal
    total_payments: Decimal
    total_refunds: Decimal
    pending_amount: Decimal
    completed_amount: Decimal
    failed_amount: Decimal


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================

class NotificationResponse(BaseModel):
    """Notification response DTO"""
    notification_id: UUID
    user_id: UUID
    notification_type: str
    title: str
    message: str
    is_read: bool
    metadata: Dict[str, Any]
    created_at: datetime


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
