"""Domain Events emitted by the reservation lifecycle"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Dict, Any

from domain.enums import EventType
from domain.entities import utcnow


class LifecycleEvent(BaseModel):
    """Something that happened to a reservation"""
    event_id: UUID = Field(default_factory=uuid4)
    event_type: EventType
    reservation_id: UUID
    occurred_at: datetime = Field(default_factory=utcnow)
    payload: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
