"""In-memory Unit of Work

Serializes mutating operations behind one lock and snapshots every
repository on entry; a rollback puts the snapshots back.
"""
import asyncio
import logging
from typing import Dict, Optional

from application.message_bus import EventBus
from application.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class InMemoryUnitOfWork(AbstractUnitOfWork):

    def __init__(self, *repositories, event_bus: Optional[EventBus] = None):
        super().__init__(event_bus)
        self.repositories = repositories
        self._lock = asyncio.Lock()
        self._snapshots: Dict[int, Dict] = {}

    async def _begin(self) -> None:
        await self._lock.acquire()
        self._snapshots = {id(repo): repo.snapshot() for repo in self.repositories}

    async def _end(self) -> None:
        self._snapshots = {}
        self._lock.release()

    async def commit(self) -> None:
        self._snapshots = {}

    async def rollback(self) -> None:
        for repo in self.repositories:
            state = self._snapshots.get(id(repo))
            if state is not None:
                repo.restore(state)
        logger.debug("Restored %d repositories", len(self._snapshots))
        self._snapshots = {}
