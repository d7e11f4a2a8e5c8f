"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional, List, Iterable
from uuid import UUID

from domain.entities import Room, Reservation
from domain.enums import ReservationStatus


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_by_code(self, code: str) -> Optional[Room]:
        """Find room by its unique code"""
        pass

    @abstractmethod
    async def find_all(self, active: Optional[bool] = None) -> List[Room]:
        """Find all rooms, optionally only active or inactive ones"""
        pass

    @abstractmethod
    async def update(self, room: Room) -> Room:
        """Update room"""
        pass


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
    async def find_by_room(
        self,
        room_id: UUID,
        statuses: Optional[Iterable[ReservationStatus]] = None
    ) -> List[Reservation]:
        """Find reservations of a room, optionally filtered by status"""
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: UUID) -> List[Reservation]:
        """Find reservations by guest ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass


class RoomLockManager(ABC):
    """Per-room critical section around check-then-write sequences"""

    @abstractmethod
    def hold(self, room_id: UUID) -> AsyncContextManager[None]:
        """Async context manager holding the room's lock"""
        pass
