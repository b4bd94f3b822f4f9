"""Unit of Work

One lifecycle operation = one unit of work. Reservation status, occupancy
and ledger writes made inside ``async with uow:`` are committed together or
rolled back together. Events recorded during the block are published only
after a successful commit.

Usage:
    async with uow:
        reservation = await repository.find_by_id(reservation_id)
        reservation.confirm(now)
        await repository.update(reservation)
        uow.record(event)
    # events are published here
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from application.message_bus import EventBus
from domain.events import LifecycleEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Transactional boundary that publishes events after commit"""

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus
        self._events: List[LifecycleEvent] = []

    async def __aenter__(self):
        await self._begin()
        self._events = []
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        events: List[LifecycleEvent] = []
        try:
            if exc_type is None:
                try:
                    await self.commit()
                except Exception:
                    await self.rollback()
                    raise
                events = list(self._events)
            else:
                logger.warning(
                    "Rolling back unit of work after %s, discarding %d events",
                    exc_type.__name__, len(self._events)
                )
                await self.rollback()
        finally:
            self._events = []
            await self._end()

        if events and self.event_bus is not None:
            await self.event_bus.publish_events(events)
        return False

    def record(self, event: LifecycleEvent) -> None:
        """Queue an event for publication after commit"""
        self._events.append(event)

    @property
    def pending_events(self) -> List[LifecycleEvent]:
        return list(self._events)

    @abstractmethod
    async def _begin(self) -> None:
        """Open the transaction"""
        pass

    @abstractmethod
    async def _end(self) -> None:
        """Release whatever _begin acquired"""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Make the changes permanent"""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Undo every change made since _begin"""
        pass
