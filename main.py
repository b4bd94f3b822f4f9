import logging
from fastapi import FastAPI, HTTPException, Depends, Response
from uuid import UUID
from datetime import datetime, timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Property
    RegisterPropertyRequest, AvailabilityResponse,
    # Reservation
    CreateReservationRequest, ProcessPaymentRequest, CancelReservationRequest,
    ReservationResponse, CancellationResponse,
    # Transaction
    TransactionResponse, UpdateTransactionStatusRequest, TransactionSummaryResponse,
    # Notification
    NotificationResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, fake_users_db, get_user
from infrastructure.security import verify_password, create_access_token
from infrastructure.config import get_settings
from domain.auth import User

from application.message_bus import EventBus
from application.notifications import LifecycleNotifier
from application.services import ReservationService, AvailabilityService, TransactionService
from infrastructure.clock import SystemClock
from infrastructure.notifications import InMemoryNotificationDispatcher
from infrastructure.unit_of_work import InMemoryUnitOfWork
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryPropertyRepository, InMemoryTransactionRepository
)
from domain.enums import (
    ReservationStatus, PaymentStatus, TransactionType, TransactionStatus, EventType
)
from domain.value_objects import TransactionFilters

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Reservation and transaction lifecycle for rental properties",
    version="1.0.0"
)

# Initialize repositories
reservation_repo = InMemoryReservationRepository()
property_repo = InMemoryPropertyRepository()
transaction_repo = InMemoryTransactionRepository()

# Events and notifications
event_bus = EventBus()
notification_dispatcher = InMemoryNotificationDispatcher()
LifecycleNotifier(notification_dispatcher, settings.currency_symbol).register(event_bus)

unit_of_work = InMemoryUnitOfWork(
    reservation_repo, property_repo, transaction_repo, event_bus=event_bus
)
clock = SystemClock()


# Dependency injection
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(property_repo)


def get_transaction_service() -> TransactionService:
    return TransactionService(
        transaction_repo, clock, unit_of_work,
        reservations=reservation_repo, properties=property_repo
    )


def get_reservation_service() -> ReservationService:
    return ReservationService(
        reservation_repo,
        get_availability_service(),
        get_transaction_service(),
        unit_of_work,
        clock,
        refund_policy=settings.refund_policy(),
        deposit_multiplier=settings.default_deposit_multiplier,
        currency_symbol=settings.currency_symbol
    )


def get_notification_dispatcher() -> InMemoryNotificationDispatcher:
    return notification_dispatcher


def _http_error(error: ValueError) -> HTTPException:
    """Map lifecycle errors to their status; other validation errors are 400"""
    return HTTPException(status_code=getattr(error, "status_code", 400), detail=str(error))

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Reservation status values: pending, confirmed, cancelled, completed"
    }

@app.get("/api/enums/payment-status", tags=["Enum Reference"])
async def get_payment_statuses():
    """Get all PaymentStatus enum values"""
    return {
        "values": [item.value for item in PaymentStatus],
        "description": "Payment status values: pending, paid, refunded"
    }

@app.get("/api/enums/transaction-type", tags=["Enum Reference"])
async def get_transaction_types():
    """Get all TransactionType enum values"""
    return {
        "values": [item.value for item in TransactionType],
        "description": "Transaction type values: deposit, payment, refund"
    }

@app.get("/api/enums/transaction-status", tags=["Enum Reference"])
async def get_transaction_statuses():
    """Get all TransactionStatus enum values"""
    return {
        "values": [item.value for item in TransactionStatus],
        "description": "Transaction status values: pending, completed, failed"
    }

@app.get("/api/enums/event-type", tags=["Enum Reference"])
async def get_event_types():
    """Get all lifecycle EventType values"""
    return {"values": [item.value for item in EventType]}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# PROPERTY ENDPOINTS
# ============================================================================

@app.post("/api/properties", response_model=AvailabilityResponse, status_code=201, tags=["Properties"])
async def register_property(
    request: RegisterPropertyRequest,
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Register a property and its capacity"""
    try:
        property = await service.register_property(
            landlord_id=request.landlord_id,
            title=request.title,
            price=request.price,
            deposit=request.deposit,
            max_occupancy=request.max_occupancy,
            current_occupancy=request.current_occupancy
        )
        return _availability_to_response(property)
    except ValueError as e:
        raise _http_error(e)

@app.get("/api/properties/{property_id}/availability", response_model=AvailabilityResponse, tags=["Properties"])
async def get_availability(
    property_id: UUID,
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get occupancy for a property"""
    try:
        return _availability_to_response(await service.get_availability(property_id))
    except ValueError as e:
        raise _http_error(e)

@app.get("/api/properties/{property_id}/reservations", response_model=List[ReservationResponse], tags=["Properties"])
async def get_property_reservations(
    property_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservations booked against a property, newest first"""
    try:
        reservations = await service.get_reservations_by_property(property_id)
        return [_reservation_to_response(r) for r in reservations]
    except ValueError as e:
        raise _http_error(e)

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Create new reservation"""
    try:
        reservation = await service.create_reservation(
            property_id=request.property_id,
            tenant_id=request.tenant_id,
            start_date=request.start_date,
            end_date=request.end_date
        )
        return _reservation_to_response(reservation)
    except ValueError as e:
        raise _http_error(e)

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get all reservations"""
    reservations = await service.get_all_reservations()
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/user/{user_id}", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_user_reservations(
    user_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservations where the user is tenant or landlord"""
    reservations = await service.get_reservations_for_user(user_id)
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    try:
        return _reservation_to_response(await service.get_reservation(reservation_id))
    except ValueError as e:
        raise _http_error(e)

@app.get("/api/reservations/{reservation_id}/transactions", response_model=List[TransactionResponse], tags=["Reservations"])
async def get_reservation_transactions(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get the ledger of a reservation"""
    try:
        transactions = await service.get_transactions(reservation_id)
        return [_transaction_to_response(t) for t in transactions]
    except ValueError as e:
        raise _http_error(e)

@app.post("/api/reservations/{reservation_id}/payment", response_model=TransactionResponse, status_code=201, tags=["Reservations"])
async def process_payment(
    reservation_id: UUID,
    request: ProcessPaymentRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Pay the deposit of a pending reservation"""
    try:
        transaction = await service.process_payment(
            reservation_id=reservation_id,
            payment_method=request.payment_method,
            payment_reference=request.payment_reference
        )
        return _transaction_to_response(transaction)
    except ValueError as e:
        raise _http_error(e)

@app.post("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Confirm a paid reservation"""
    try:
        reservation = await service.confirm_reservation(reservation_id)
        return _reservation_to_response(reservation)
    except ValueError as e:
        raise _http_error(e)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=CancellationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel reservation"""
    try:
        result = await service.cancel_reservation(
            reservation_id=reservation_id,
            reason=request.reason
        )
        return {"success": result.success, "refund_amount": result.refund_amount, "message": result.message}
    except ValueError as e:
        raise _http_error(e)

@app.post("/api/reservations/{reservation_id}/complete", response_model=ReservationResponse, tags=["Reservations"])
async def complete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Mark a confirmed stay as completed"""
    try:
        reservation = await service.complete_reservation(reservation_id)
        return _reservation_to_response(reservation)
    except ValueError as e:
        raise _http_error(e)

# ============================================================================
# TRANSACTION ENDPOINTS
# ============================================================================

@app.get("/api/transactions", response_model=List[TransactionResponse], tags=["Transactions"])
async def get_transactions(
    filters: TransactionFilters = Depends(),
    q: Optional[str] = None,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """List transactions, newest first; q searches id, reference, method and property title"""
    if q:
        transactions = await service.search_transactions(q, filters)
    else:
        transactions = await service.get_transactions(filters)
    return [_transaction_to_response(t) for t in transactions]

@app.get("/api/transactions/summary", response_model=TransactionSummaryResponse, tags=["Transactions"])
async def get_transaction_summary(
    user_id: Optional[UUID] = None,
    reservation_id: Optional[UUID] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """Totals by type and status"""
    summary = await service.summary_for(
        user_id=user_id,
        reservation_id=reservation_id,
        date_from=date_from,
        date_to=date_to
    )
    return summary.model_dump()

@app.get("/api/transactions/payment-methods", response_model=List[str], tags=["Transactions"])
async def get_payment_methods(
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """Distinct payment methods seen in the ledger"""
    return await service.get_payment_methods()

@app.get("/api/transactions/export", tags=["Transactions"])
async def export_transactions(
    filters: TransactionFilters = Depends(),
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """Export transactions as CSV"""
    content = await service.export_csv(filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'}
    )

@app.get("/api/transactions/{transaction_id}", response_model=TransactionResponse, tags=["Transactions"])
async def get_transaction(
    transaction_id: UUID,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get transaction by ID"""
    try:
        return _transaction_to_response(await service.get_transaction(transaction_id))
    except ValueError as e:
        raise _http_error(e)

@app.patch("/api/transactions/{transaction_id}/status", response_model=TransactionResponse, tags=["Transactions"])
async def update_transaction_status(
    transaction_id: UUID,
    request: UpdateTransactionStatusRequest,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(get_current_active_user)
):
    """Settle a pending transaction"""
    try:
        transaction = await service.update_status(
            transaction_id, request.status, request.payment_reference
        )
        return _transaction_to_response(transaction)
    except ValueError as e:
        raise _http_error(e)

# ============================================================================
# NOTIFICATION ENDPOINTS
# ============================================================================

@app.get("/api/notifications/{user_id}/unread-count", tags=["Notifications"])
async def get_unread_count(
    user_id: UUID,
    dispatcher: InMemoryNotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(get_current_active_user)
):
    """Number of unread notifications of a user"""
    return {"user_id": user_id, "unread_count": await dispatcher.unread_count(user_id)}

@app.get("/api/notifications/{user_id}", response_model=List[NotificationResponse], tags=["Notifications"])
async def get_user_notifications(
    user_id: UUID,
    unread_only: bool = False,
    dispatcher: InMemoryNotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(get_current_active_user)
):
    """Get notifications of a user, newest first"""
    notifications = await dispatcher.find_by_user_id(user_id, unread_only=unread_only)
    return [_notification_to_response(n) for n in notifications]

@app.post("/api/notifications/{notification_id}/read", response_model=NotificationResponse, tags=["Notifications"])
async def mark_notification_read(
    notification_id: UUID,
    dispatcher: InMemoryNotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: User = Depends(get_current_active_user)
):
    """Mark a notification as read"""
    notification = await dispatcher.mark_as_read(notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return _notification_to_response(notification)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _availability_to_response(property) -> AvailabilityResponse:
    """Convert Property entity to AvailabilityResponse"""
    return AvailabilityResponse(
        property_id=property.property_id,
        landlord_id=property.landlord_id,
        title=property.title,
        price=property.price,
        deposit=property.deposit,
        max_occupancy=property.max_occupancy,
        current_occupancy=property.current_occupancy,
        available_slots=property.available_slots,
        is_at_capacity=property.is_at_capacity,
        last_updated=property.last_updated,
        version=property.version
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        property_id=reservation.property_id,
        tenant_id=reservation.tenant_id,
        landlord_id=reservation.landlord_id,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
        status=reservation.status.value,
        payment_status=reservation.payment_status.value,
        total_amount=reservation.total_amount,
        deposit_amount=reservation.deposit_amount,
        cancellation_reason=reservation.cancellation_reason,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
        version=reservation.version
    )

def _transaction_to_response(transaction) -> TransactionResponse:
    """Convert Transaction entity to TransactionResponse"""
    return TransactionResponse(
        transaction_id=transaction.transaction_id,
        reservation_id=transaction.reservation_id,
        user_id=transaction.user_id,
        transaction_type=transaction.transaction_type.value,
        amount=transaction.amount,
        status=transaction.status.value,
        payment_method=transaction.payment_method,
        payment_reference=transaction.payment_reference,
        transaction_date=transaction.transaction_date,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at
    )

def _notification_to_response(notification) -> NotificationResponse:
    """Convert Notification entity to NotificationResponse"""
    return NotificationResponse(
        notification_id=notification.notification_id,
        user_id=notification.user_id,
        notification_type=notification.notification_type.value,
        title=notification.title,
        message=notification.message,
        is_read=notification.is_read,
        metadata=notification.metadata,
        created_at=notification.created_at
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
