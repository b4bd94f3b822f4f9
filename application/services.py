"""Application Services - Business use cases"""
import csv
import io
import logging
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from application.unit_of_work import AbstractUnitOfWork
from domain.entities import Reservation, Property, Transaction
from domain.enums import (
    ReservationStatus, PaymentStatus, TransactionType, TransactionStatus, EventType
)
from domain.events import LifecycleEvent
from domain.exceptions import (
    ReservationNotFound, PropertyNotFound, TransactionNotFound, PropertyAtCapacity,
    InvalidStateTransition
)
from domain.gateways import Clock
from domain.refund_policy import STANDARD_POLICY, compute_refund
from domain.repositories import ReservationRepository, PropertyRepository, TransactionRepository
from domain.value_objects import (
    DateRange, RefundPolicy, CancellationResult, TransactionFilters, TransactionSummary,
    format_amount, to_money
)

logger = logging.getLogger(__name__)

REFUND_PAYMENT_METHOD = "refund"


def _reference(prefix: str, now: datetime) -> str:
    return f"{prefix}_{int(now.timestamp() * 1000)}"


class AvailabilityService:
    """Service for property capacity (occupancy slots)"""

    def __init__(self, repository: PropertyRepository):
        self.repository = repository

    async def register_property(
        self,
        landlord_id: UUID,
        title: str,
        price: Decimal,
        max_occupancy: int,
        deposit: Optional[Decimal] = None,
        current_occupancy: int = 0
    ) -> Property:
        """Register a property with its capacity"""
        property = Property(
            landlord_id=landlord_id,
            title=title,
            price=price,
            deposit=deposit,
            max_occupancy=max_occupancy,
            current_occupancy=current_occupancy
        )
        return await self.repository.save(property)

    async def get_property(self, property_id: UUID) -> Property:
        property = await self.repository.find_by_id(property_id)
        if property is None:
            raise PropertyNotFound(property_id)
        return property

    async def get_availability(self, property_id: UUID) -> Property:
        return await self.get_property(property_id)

    async def has_capacity(self, property_id: UUID) -> bool:
        """Read-only capacity check; reserves nothing"""
        property = await self.get_property(property_id)
        return property.has_capacity()

    async def reserve(self, property_id: UUID) -> bool:
        """Take one slot atomically or raise PropertyAtCapacity"""
        await self.get_property(property_id)
        if not await self.repository.try_reserve_slot(property_id):
            logger.warning("Property %s is at capacity, slot not reserved", property_id)
            raise PropertyAtCapacity(property_id)
        return True

    async def release(self, property_id: UUID) -> None:
        """Give back one slot"""
        await self.get_property(property_id)
        await self.repository.release_slot(property_id)


class TransactionService:
    """Service for the transaction ledger"""

    def __init__(
        self,
        repository: TransactionRepository,
        clock: Clock,
        unit_of_work: AbstractUnitOfWork,
        reservations: Optional[ReservationRepository] = None,
        properties: Optional[PropertyRepository] = None
    ):
        self.repository = repository
        self.clock = clock
        self.uow = unit_of_work
        # used by search to match on property title
        self.reservations = reservations
        self.properties = properties

    async def record(
        self,
        reservation_id: UUID,
        user_id: UUID,
        transaction_type: TransactionType,
        amount: Decimal,
        payment_method: str,
        payment_reference: Optional[str] = None
    ) -> Transaction:
        """Append a completed transaction.

        The payment gateway is mocked as always succeeding, so the entry is
        opened and settled in one step. Runs inside the caller's unit of work.
        """
        now = self.clock.now()
        transaction = Transaction.open(
            reservation_id=reservation_id,
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            payment_method=payment_method,
            now=now,
            payment_reference=payment_reference
        )
        transaction.complete(now)
        saved = await self.repository.save(transaction)
        logger.info(
            "Recorded %s transaction %s of %s for reservation %s",
            transaction_type.value, saved.transaction_id, saved.amount, reservation_id
        )
        return saved

    async def update_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
        payment_reference: Optional[str] = None
    ) -> Transaction:
        """Settle a pending transaction as completed or failed"""
        async with self.uow:
            transaction = await self.get_transaction(transaction_id)
            now = self.clock.now()
            if status == TransactionStatus.COMPLETED:
                transaction.complete(now, payment_reference)
            elif status == TransactionStatus.FAILED:
                transaction.fail(now, payment_reference)
            else:
                raise InvalidStateTransition("A transaction cannot move back to pending")
            return await self.repository.update(transaction)

    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        transaction = await self.repository.find_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFound(transaction_id)
        return transaction

    async def get_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        return await self.repository.find(filters or TransactionFilters())

    async def search_transactions(
        self,
        term: str,
        filters: Optional[TransactionFilters] = None
    ) -> List[Transaction]:
        """Filtered transactions whose id, reference, method or property title contains term.

        Matching is case-insensitive. A blank term returns the filtered list as is.
        """
        transactions = await self.get_transactions(filters)
        needle = term.strip().lower()
        if not needle:
            return transactions

        titles = await self._property_titles({t.reservation_id for t in transactions})
        results = []
        for t in transactions:
            searchable = " ".join(filter(None, [
                str(t.transaction_id),
                t.payment_reference,
                t.payment_method,
                titles.get(t.reservation_id)
            ])).lower()
            if needle in searchable:
                results.append(t)
        return results

    async def _property_titles(self, reservation_ids) -> Dict[UUID, str]:
        if self.reservations is None or self.properties is None:
            return {}

        titles: Dict[UUID, str] = {}
        for reservation_id in reservation_ids:
            reservation = await self.reservations.find_by_id(reservation_id)
            if reservation is None:
                continue
            property = await self.properties.find_by_id(reservation.property_id)
            if property is not None and property.title:
                titles[reservation_id] = property.title
        return titles

    async def get_reservation_transactions(self, reservation_id: UUID) -> List[Transaction]:
        return await self.repository.find_by_reservation_id(reservation_id)

    async def summary_for(
        self,
        user_id: Optional[UUID] = None,
        reservation_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> TransactionSummary:
        """Totals by type and by status"""
        transactions = await self.repository.find(TransactionFilters(
            user_id=user_id,
            reservation_id=reservation_id,
            date_from=date_from,
            date_to=date_to
        ))

        summary = TransactionSummary(total_transactions=len(transactions))
        by_type = {
            TransactionType.DEPOSIT: "total_deposits",
            TransactionType.PAYMENT: "total_payments",
            TransactionType.REFUND: "total_refunds",
        }
        by_status = {
            TransactionStatus.PENDING: "pending_amount",
            TransactionStatus.COMPLETED: "completed_amount",
            TransactionStatus.FAILED: "failed_amount",
        }
        for transaction in transactions:
            summary.total_amount += transaction.amount
            type_field = by_type[transaction.transaction_type]
            setattr(summary, type_field, getattr(summary, type_field) + transaction.amount)
            status_field = by_status[transaction.status]
            setattr(summary, status_field, getattr(summary, status_field) + transaction.amount)
        return summary

    async def get_payment_methods(self) -> List[str]:
        transactions = await self.repository.find(TransactionFilters())
        return sorted({t.payment_method for t in transactions if t.payment_method})

    async def export_csv(self, filters: Optional[TransactionFilters] = None) -> str:
        """Export matching transactions as CSV, every field quoted"""
        transactions = await self.get_transactions(filters)

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow([
            "Transaction ID", "Date", "Type", "Amount", "Status",
            "Payment Method", "Reference", "User ID", "Reservation ID"
        ])
        for t in transactions:
            writer.writerow([
                t.transaction_id,
                t.transaction_date.date().isoformat(),
                t.transaction_type.value,
                t.amount,
                t.status.value,
                t.payment_method,
                t.payment_reference or "",
                t.user_id,
                t.reservation_id
            ])
        return buffer.getvalue()


class ReservationService:
    """Service for the reservation lifecycle: create, pay, confirm, cancel, complete"""

    def __init__(
        self,
        repository: ReservationRepository,
        availability: AvailabilityService,
        ledger: TransactionService,
        unit_of_work: AbstractUnitOfWork,
        clock: Clock,
        refund_policy: RefundPolicy = STANDARD_POLICY,
        deposit_multiplier: Decimal = Decimal("1"),
        currency_symbol: str = "₱"
    ):
        self.repository = repository
        self.availability = availability
        self.ledger = ledger
        self.uow = unit_of_work
        self.clock = clock
        self.refund_policy = refund_policy
        self.deposit_multiplier = deposit_multiplier
        self.currency_symbol = currency_symbol

    # ==================== COMMANDS ====================
    async def create_reservation(
        self,
        property_id: UUID,
        tenant_id: UUID,
        start_date: datetime,
        end_date: Optional[datetime] = None
    ) -> Reservation:
        """Create a pending reservation; capacity is checked, not reserved"""
        async with self.uow:
            property = await self.availability.get_property(property_id)
            if not property.has_capacity():
                raise PropertyAtCapacity(property_id)

            now = self.clock.now()
            date_range = DateRange.between(start_date, end_date)
            reservation = Reservation.create(
                property=property,
                tenant_id=tenant_id,
                date_range=date_range,
                now=now,
                deposit_multiplier=self.deposit_multiplier
            )
            saved = await self.repository.save(reservation)
            self.uow.record(self._event(EventType.RESERVATION_CREATED, saved, property, now))

        logger.info(
            "Created reservation %s for property %s by tenant %s",
            saved.reservation_id, property_id, tenant_id
        )
        return saved

    async def process_payment(
        self,
        reservation_id: UUID,
        payment_method: str,
        payment_reference: Optional[str] = None
    ) -> Transaction:
        """Collect the deposit for a pending reservation"""
        async with self.uow:
            reservation = await self.get_reservation(reservation_id)
            now = self.clock.now()
            reservation.mark_paid(now)

            transaction = await self.ledger.record(
                reservation_id=reservation.reservation_id,
                user_id=reservation.tenant_id,
                transaction_type=TransactionType.DEPOSIT,
                amount=reservation.deposit_amount,
                payment_method=payment_method,
                payment_reference=payment_reference or _reference("MOCK", now)
            )
            await self.repository.update(reservation)

            property = await self.availability.get_property(reservation.property_id)
            self.uow.record(self._event(
                EventType.PAYMENT_COMPLETED, reservation, property, now,
                transaction_id=transaction.transaction_id,
                amount=transaction.amount
            ))

        logger.info("Deposit paid for reservation %s", reservation_id)
        return transaction

    async def confirm_reservation(self, reservation_id: UUID) -> Reservation:
        """Confirm a paid reservation and take its occupancy slot"""
        async with self.uow:
            reservation = await self.get_reservation(reservation_id)
            now = self.clock.now()
            reservation.confirm(now)

            await self.availability.reserve(reservation.property_id)
            updated = await self.repository.update(reservation)

            property = await self.availability.get_property(reservation.property_id)
            self.uow.record(self._event(EventType.RESERVATION_CONFIRMED, updated, property, now))

        logger.info("Confirmed reservation %s", reservation_id)
        return updated

    async def cancel_reservation(
        self,
        reservation_id: UUID,
        reason: str = "Tenant requested cancellation"
    ) -> CancellationResult:
        """Cancel reservation, refund per policy and free the slot if one was taken"""
        async with self.uow:
            reservation = await self.get_reservation(reservation_id)
            now = self.clock.now()
            previous_status = reservation.cancel(reason, now)
            was_confirmed = previous_status == ReservationStatus.CONFIRMED

            refund_amount = compute_refund(
                reservation.deposit_amount if was_confirmed else Decimal("0"),
                reservation.start_date,
                now,
                reservation.payment_status,
                self.refund_policy
            )

            refund = None
            if refund_amount > 0 and reservation.payment_status == PaymentStatus.PAID:
                refund = await self.ledger.record(
                    reservation_id=reservation.reservation_id,
                    user_id=reservation.tenant_id,
                    transaction_type=TransactionType.REFUND,
                    amount=refund_amount,
                    payment_method=REFUND_PAYMENT_METHOD,
                    payment_reference=_reference("REFUND", now)
                )
                reservation.mark_refunded(now)
            else:
                refund_amount = to_money(0)

            if was_confirmed:
                await self.availability.release(reservation.property_id)

            await self.repository.update(reservation)

            property = await self.availability.get_property(reservation.property_id)
            self.uow.record(self._event(
                EventType.RESERVATION_CANCELLED, reservation, property, now,
                refund_amount=refund_amount,
                reason=reason
            ))
            if refund is not None:
                self.uow.record(self._event(
                    EventType.PAYMENT_REFUNDED, reservation, property, now,
                    transaction_id=refund.transaction_id,
                    amount=refund.amount
                ))

        logger.info("Cancelled reservation %s, refund %s", reservation_id, refund_amount)
        if refund_amount > 0:
            message = (
                f"Reservation cancelled. Refund of "
                f"{format_amount(refund_amount, self.currency_symbol)} will be processed."
            )
        else:
            message = "Reservation cancelled."
        return CancellationResult(success=True, refund_amount=refund_amount, message=message)

    async def complete_reservation(self, reservation_id: UUID) -> Reservation:
        """Close out a confirmed reservation after the stay"""
        async with self.uow:
            reservation = await self.get_reservation(reservation_id)
            now = self.clock.now()
            reservation.complete(now)
            updated = await self.repository.update(reservation)

            property = await self.availability.get_property(reservation.property_id)
            self.uow.record(self._event(EventType.RESERVATION_COMPLETED, updated, property, now))

        logger.info("Completed reservation %s", reservation_id)
        return updated

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        """Get reservation by ID"""
        reservation = await self.repository.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    async def get_reservations_for_user(self, user_id: UUID) -> List[Reservation]:
        """Reservations where the user is tenant or landlord, newest first"""
        reservations = await self.repository.find_by_user_id(user_id)
        return sorted(reservations, key=lambda r: r.created_at, reverse=True)

    async def get_reservations_by_property(self, property_id: UUID) -> List[Reservation]:
        """Reservations booked against a property, newest first"""
        await self.availability.get_property(property_id)
        reservations = await self.repository.find_by_property_id(property_id)
        return sorted(reservations, key=lambda r: r.created_at, reverse=True)

    async def get_all_reservations(self) -> List[Reservation]:
        return await self.repository.find_all()

    async def get_transactions(self, reservation_id: UUID) -> List[Transaction]:
        await self.get_reservation(reservation_id)
        return await self.ledger.get_reservation_transactions(reservation_id)

    # ==================== HELPERS ====================
    def _event(self, event_type: EventType, reservation: Reservation, property: Property,
               now: datetime, **payload) -> LifecycleEvent:
        return LifecycleEvent(
            event_type=event_type,
            reservation_id=reservation.reservation_id,
            occurred_at=now,
            payload={
                "tenant_id": reservation.tenant_id,
                "landlord_id": reservation.landlord_id,
                "property_id": reservation.property_id,
                "property_title": property.title,
                **payload
            }
        )
