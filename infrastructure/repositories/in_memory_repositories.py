"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict, Iterable
from uuid import UUID

from domain.repositories import RoomRepository, ReservationRepository
from domain.entities import Room, Reservation
from domain.enums import ReservationStatus
from domain.exceptions import NotFoundError


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Room] = {}

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        self._storage[room.room_id] = room
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        return self._storage.get(room_id)

    async def find_by_code(self, code: str) -> Optional[Room]:
        """Find room by code"""
        for room in self._storage.values():
            if room.code == code:
                return room
        return None

    async def find_all(self, active: Optional[bool] = None) -> List[Room]:
        """Find all rooms ordered by code"""
        rooms = [r for r in self._storage.values() if active is None or r.active == active]
        return sorted(rooms, key=lambda r: r.code)

    async def update(self, room: Room) -> Room:
        """Update room"""
        if room.room_id in self._storage:
            self._storage[room.room_id] = room
            return room
        raise NotFoundError("Room not found")


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.reservation_id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_by_room(
        self,
        room_id: UUID,
        statuses: Optional[Iterable[ReservationStatus]] = None
    ) -> List[Reservation]:
        """Find reservations of a room"""
        wanted = set(statuses) if statuses is not None else None
        return [
            r for r in self._storage.values()
            if r.room_id == room_id and (wanted is None or r.status in wanted)
        ]

    async def find_by_guest_id(self, guest_id: UUID) -> List[Reservation]:
        """Find reservations by guest ID"""
        return [r for r in self._storage.values() if r.guest_id == guest_id]

    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        return list(self._storage.values())

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation
            return reservation
        raise NotFoundError("Reservation not found")
