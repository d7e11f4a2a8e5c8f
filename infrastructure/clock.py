"""Clock implementations"""
from datetime import datetime, timedelta

from domain.clock import Clock


class SystemClock(Clock):
    """Local wall-clock time of the property"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Clock pinned to a given instant; advance() moves it forward"""

    def __init__(self, current: datetime):
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, **kwargs) -> datetime:
        self._current += timedelta(**kwargs)
        return self._current
