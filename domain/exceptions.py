"""Domain Exceptions"""
from typing import List, Optional


class DomainError(Exception):
    """Base class for reservation engine errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError, ValueError):
    """Malformed input: missing rate, inverted interval, unknown tariff type"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConflictError(DomainError):
    """Overlapping reservation, double check-in or duplicate room code"""

    def __init__(self, message: str, conflicts: Optional[List] = None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])


class StateError(DomainError):
    """Illegal status transition"""


class ExpiredError(DomainError):
    """Action attempted past its allowed time boundary"""


class NotFoundError(DomainError):
    """Unknown room or reservation"""
