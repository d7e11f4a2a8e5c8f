"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    RELEASED = "RELEASED"


class TariffType(str, Enum):
    HOUR = "HOUR"
    NIGHT = "NIGHT"
    MONTH = "MONTH"


class StayEventKind(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class StayState(str, Enum):
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class RoomOccupancy(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    GUEST = "GUEST"


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})

TERMINAL_STATUSES = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.COMPLETED,
    ReservationStatus.RELEASED,
})

# Checked-in reservations keep CONFIRMED status, so this covers them too
BLOCKING_STATUSES = frozenset({ReservationStatus.CONFIRMED})
