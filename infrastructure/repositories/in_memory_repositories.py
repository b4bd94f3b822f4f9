"""In-Memory Repository Implementations

Entities are stored and handed out as copies, so a caller's changes only
reach storage through save()/update(), the same as with a database row.
"""
import asyncio
from typing import Optional, List, Dict
from uuid import UUID

from domain.repositories import ReservationRepository, PropertyRepository, TransactionRepository
from domain.entities import Reservation, Property, Transaction
from domain.value_objects import TransactionFilters


class _SnapshotMixin:
    """Lets a unit of work capture and restore the whole store"""

    _storage: Dict

    def snapshot(self) -> Dict:
        return {key: value.model_copy(deep=True) for key, value in self._storage.items()}

    def restore(self, state: Dict) -> None:
        self._storage = state


class InMemoryReservationRepository(_SnapshotMixin, ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation.model_copy(deep=True)

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        reservation = self._storage.get(reservation_id)
        return reservation.model_copy(deep=True) if reservation else None

    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        """Find reservations where the user is tenant or landlord"""
        return [r.model_copy(deep=True) for r in self._storage.values() if r.involves(user_id)]

    async def find_by_property_id(self, property_id: UUID) -> List[Reservation]:
        """Find reservations for a property"""
        return [r.model_copy(deep=True) for r in self._storage.values() if r.property_id == property_id]

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        return [r.model_copy(deep=True) for r in self._storage.values()]

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
            return reservation.model_copy(deep=True)
        raise ValueError("Reservation not found")


class InMemoryPropertyRepository(_SnapshotMixin, PropertyRepository):
    """In-memory implementation of PropertyRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Property] = {}
        self._lock = asyncio.Lock()

    async def save(self, property: Property) -> Property:
        """Save property to memory"""
        self._storage[property.property_id] = property.model_copy(deep=True)
        return property.model_copy(deep=True)

    async def find_by_id(self, property_id: UUID) -> Optional[Property]:
        """Find property by ID"""
        property = self._storage.get(property_id)
        return property.model_copy(deep=True) if property else None

    async def try_reserve_slot(self, property_id: UUID) -> bool:
        """Conditional increment: current + 1 where current < max"""
        async with self._lock:
            property = self._storage.get(property_id)
            if property is None:
                raise ValueError("Property not found")
            if property.is_at_capacity:
                return False
            property.reserve_slot()
            return True

    async def release_slot(self, property_id: UUID) -> None:
        """Decrement occupancy, floored at zero"""
        async with self._lock:
            property = self._storage.get(property_id)
            if property is None:
                raise ValueError("Property not found")
            property.release_slot()


class InMemoryTransactionRepository(_SnapshotMixin, TransactionRepository):
    """In-memory implementation of TransactionRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Transaction] = {}

    async def save(self, transaction: Transaction) -> Transaction:
        """Append transaction; entries are never replaced by save"""
        if transaction.transaction_id in self._storage:
            raise ValueError("Transaction already recorded")
        self._storage[transaction.transaction_id] = transaction.model_copy(deep=True)
        return transaction.model_copy(deep=True)

    async def find_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        """Find transaction by ID"""
        transaction = self._storage.get(transaction_id)
        return transaction.model_copy(deep=True) if transaction else None

    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Transaction]:
        """Find transactions of a reservation in the order they were recorded"""
        return [
            t.model_copy(deep=True) for t in self._storage.values()
            if t.reservation_id == reservation_id
        ]

    async def find(self, filters: TransactionFilters) -> List[Transaction]:
        """Find transactions matching filters, newest first"""
        results = [t.model_copy(deep=True) for t in self._storage.values() if _matches(t, filters)]
        return sorted(results, key=lambda t: t.transaction_date, reverse=True)

    async def update(self, transaction: Transaction) -> Transaction:
        """Update transaction status"""
        if transaction.transaction_id in self._storage:
            self._storage[transaction.transaction_id] = transaction.model_copy(deep=True)
            return transaction.model_copy(deep=True)
        raise ValueError("Transaction not found")


def _matches(transaction: Transaction, filters: TransactionFilters) -> bool:
    if filters.user_id and transaction.user_id != filters.user_id:
        return False
    if filters.reservation_id and transaction.reservation_id != filters.reservation_id:
        return False
    if filters.transaction_type and transaction.transaction_type != filters.transaction_type:
        return False
    if filters.status and transaction.status != filters.status:
        return False
    if filters.date_from and transaction.transaction_date < filters.date_from:
        return False
    if filters.date_to and transaction.transaction_date > filters.date_to:
        return False
    if filters.amount_min is not None and transaction.amount < filters.amount_min:
        return False
    if filters.amount_max is not None and transaction.amount > filters.amount_max:
        return False
    if filters.payment_method and transaction.payment_method != filters.payment_method:
        return False
    return True
