"""Domain Clock interface"""
from abc import ABC, abstractmethod
from datetime import date, datetime


class Clock(ABC):
    """Source of the current local wall-clock time"""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self) -> date:
        return self.now().date()
