"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.entities import Reservation, Property, Transaction
from domain.value_objects import TransactionFilters


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Reservation]:
        """Find reservations where the user is tenant or landlord"""
        pass

    @abstractmethod
    async def find_by_property_id(self, property_id: UUID) -> List[Reservation]:
        """Find reservations for a property"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass


class PropertyRepository(ABC):
    """Repository interface for the Property capacity view"""

    @abstractmethod
    async def save(self, property: Property) -> Property:
        """Save property"""
        pass

    @abstractmethod
    async def find_by_id(self, property_id: UUID) -> Optional[Property]:
        """Find property by ID"""
        pass

    @abstractmethod
    async def try_reserve_slot(self, property_id: UUID) -> bool:
        """Increment occupancy only if below max; one atomic step"""
        pass

    @abstractmethod
    async def release_slot(self, property_id: UUID) -> None:
        """Decrement occupancy, floored at zero"""
        pass


class TransactionRepository(ABC):
    """Repository interface for the append-only ledger"""

    @abstractmethod
    async def save(self, transaction: Transaction) -> Transaction:
        """Append transaction"""
        pass

    @abstractmethod
    async def find_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        """Find transaction by ID"""
        pass

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> List[Transaction]:
        """Find transactions of a reservation"""
        pass

    @abstractmethod
    async def find(self, filters: TransactionFilters) -> List[Transaction]:
        """Find transactions matching filters, newest first"""
        pass

    @abstractmethod
    async def update(self, transaction: Transaction) -> Transaction:
        """Update transaction status"""
        pass
