from datetime import datetime, timedelta, timezone

from domain.gateways import Clock
from domain.value_objects import ensure_utc


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a moment; move it with advance()"""

    def __init__(self, moment: datetime):
        self._moment = ensure_utc(moment)

    def now(self) -> datetime:
        return self._moment

    def set(self, moment: datetime) -> None:
        self._moment = ensure_utc(moment)

    def advance(self, delta: timedelta) -> None:
        self._moment = self._moment + delta
