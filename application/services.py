"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import date, datetime, time
from typing import List, Optional, Union

from pydantic import BaseModel

from domain.clock import Clock
from domain.repositories import RoomRepository, ReservationRepository, RoomLockManager
from domain.entities import Room, Reservation, StayEvent
from domain.enums import (
    ReservationStatus, TariffType, StayEventKind, RoomOccupancy, UserRole, STAFF_ROLES
)
from domain.exceptions import ConflictError, NotFoundError, ValidationError
from domain.scheduling import (
    OPENING_TIME, SLOT_STEP_MINUTES, check_availability, find_conflicts, suggest_slots
)
from domain.tariffs import calculate_quote, parse_tariff_type
from domain.value_objects import (
    Quote, ReservationConflict, RoomRates, SlotSuggestion, StayPeriod, StayStatus
)

logger = logging.getLogger(__name__)


class RoomAvailability(BaseModel):
    """One row of an availability search"""
    room: Room
    available: bool
    conflicts: List[ReservationConflict] = []


def _describe_conflicts(conflicts: List[ReservationConflict]) -> str:
    frees_at = max(c.frees_at for c in conflicts)
    return f"Room is already booked for that interval; it frees at {frees_at.isoformat()}"


class RoomService:
    """Service for Room use cases"""

    def __init__(self, repository: RoomRepository, clock: Clock):
        self.repository = repository
        self.clock = clock

    async def create_room(
        self,
        code: str,
        name: str,
        rates: RoomRates,
        capacity: int = 1,
        min_hours: Optional[int] = None,
        description: Optional[str] = None
    ) -> Room:
        """Register a room; codes are unique"""
        room = Room.create(
            code=code,
            name=name,
            rates=rates,
            capacity=capacity,
            min_hours=min_hours,
            description=description
        )
        if await self.repository.find_by_code(room.code):
            raise ConflictError(f"Room code {room.code} already exists")

        room = await self.repository.save(room)
        logger.info("Room %s (%s) created", room.code, room.room_id)
        return room

    async def get_room(self, room_id: UUID) -> Room:
        room = await self.repository.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def list_rooms(self, active: Optional[bool] = None) -> List[Room]:
        return await self.repository.find_all(active=active)

    async def update_room(
        self,
        room_id: UUID,
        name: Optional[str] = None,
        rates: Optional[RoomRates] = None,
        capacity: Optional[int] = None,
        min_hours: Optional[int] = None,
        description: Optional[str] = None
    ) -> Room:
        """Edit a room; only future quotes and slot suggestions see the change"""
        room = await self.get_room(room_id)
        room.update(
            self.clock.now(),
            name=name,
            rates=rates,
            capacity=capacity,
            min_hours=min_hours,
            description=description
        )
        room = await self.repository.update(room)
        logger.info("Room %s updated (version %d)", room.code, room.version)
        return room

    async def set_room_active(self, room_id: UUID, active: bool) -> Room:
        room = await self.get_room(room_id)
        room.set_active(active, self.clock.now())
        room = await self.repository.update(room)
        logger.info("Room %s %s", room.code, "activated" if active else "deactivated")
        return room


class ReservationService:
    """Service for Reservation use cases: quoting, booking and state changes"""

    def __init__(
        self,
        repository: ReservationRepository,
        room_repository: RoomRepository,
        locks: RoomLockManager,
        clock: Clock
    ):
        self.repository = repository
        self.room_repository = room_repository
        self.locks = locks
        self.clock = clock

    async def _get_room(self, room_id: UUID) -> Room:
        room = await self.room_repository.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def quote(
        self,
        room_id: UUID,
        tariff_type: Union[TariffType, str],
        start_date: date,
        end_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None
    ) -> Quote:
        """Price a stay without booking it"""
        room = await self._get_room(room_id)
        period = StayPeriod.create(start_date, end_date, start_time, end_time)
        return calculate_quote(room.rates, room.min_hours, tariff_type, period)

    async def create_reservation(
        self,
        room_id: UUID,
        guest_id: UUID,
        tariff_type: Union[TariffType, str],
        start_date: date,
        end_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        payment_reference: Optional[str] = None,
        guest_count: int = 1,
        created_by: str = "SYSTEM",
        actor_role: UserRole = UserRole.GUEST
    ) -> Reservation:
        """Book a room; staff bookings are confirmed straight away"""
        tariff_type = parse_tariff_type(tariff_type)
        period = StayPeriod.create(start_date, end_date, start_time, end_time)
        status = (
            ReservationStatus.CONFIRMED if actor_role in STAFF_ROLES
            else ReservationStatus.PENDING
        )

        async with self.locks.hold(room_id):
            room = await self._get_room(room_id)
            reservation = Reservation.create(
                room=room,
                guest_id=guest_id,
                period=period,
                tariff_type=tariff_type,
                now=self.clock.now(),
                status=status,
                payment_reference=payment_reference,
                guest_count=guest_count,
                created_by=created_by
            )

            existing = await self.repository.find_by_room(room_id)
            conflicts = find_conflicts(room_id, reservation.occupied_span(), existing)
            if conflicts:
                logger.warning(
                    "Reservation for room %s rejected: %d conflicting reservation(s)",
                    room.code, len(conflicts)
                )
                raise ConflictError(_describe_conflicts(conflicts), conflicts)

            reservation = await self.repository.save(reservation)

        logger.info(
            "Reservation %s created for room %s as %s (%s x%d, total %s)",
            reservation.reservation_id, room.code, reservation.status.value,
            reservation.tariff_type.value, reservation.unit_count, reservation.total_amount.amount
        )
        return reservation

    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def list_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        room_id: Optional[UUID] = None,
        tariff_type: Optional[TariffType] = None,
        guest_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Filtered reservations, newest first"""
        if guest_id is not None:
            reservations = await self.repository.find_by_guest_id(guest_id)
        elif room_id is not None:
            reservations = await self.repository.find_by_room(room_id)
        else:
            reservations = await self.repository.find_all()

        reservations = [
            r for r in reservations
            if (status is None or r.status == status)
            and (room_id is None or r.room_id == room_id)
            and (tariff_type is None or r.tariff_type == tariff_type)
        ]
        return sorted(reservations, key=lambda r: r.created_at, reverse=True)

    async def change_reservation_state(
        self,
        reservation_id: UUID,
        target_status: Union[ReservationStatus, str],
        actor: str = "SYSTEM"
    ) -> Reservation:
        """Staff transition; confirming re-checks the room for overlaps"""
        try:
            target_status = ReservationStatus(target_status)
        except ValueError:
            raise ValidationError(f"Unknown reservation status '{target_status}'", field="status")

        reservation = await self.get_reservation(reservation_id)
        async with self.locks.hold(reservation.room_id):
            reservation = await self.get_reservation(reservation_id)
            previous = reservation.status

            if target_status == ReservationStatus.CONFIRMED and reservation.can_transition_to(target_status):
                existing = await self.repository.find_by_room(reservation.room_id)
                conflicts = find_conflicts(
                    reservation.room_id,
                    reservation.occupied_span(),
                    existing,
                    exclude_id=reservation.reservation_id
                )
                if conflicts:
                    logger.warning(
                        "Confirmation of reservation %s lost to %d overlapping reservation(s)",
                        reservation_id, len(conflicts)
                    )
                    raise ConflictError(_describe_conflicts(conflicts), conflicts)

            reservation.transition_to(target_status, actor, self.clock.now())
            reservation = await self.repository.update(reservation)

        logger.info(
            "Reservation %s moved from %s to %s by %s",
            reservation_id, previous.value, reservation.status.value, actor
        )
        return reservation


class StayService:
    """Check-in/check-out coordination"""

    def __init__(self, repository: ReservationRepository, locks: RoomLockManager, clock: Clock):
        self.repository = repository
        self.locks = locks
        self.clock = clock

    async def _get_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def check_in(self, reservation_id: UUID, actor: str, notes: Optional[str] = None) -> Reservation:
        reservation = await self._get_reservation(reservation_id)
        async with self.locks.hold(reservation.room_id):
            reservation = await self._get_reservation(reservation_id)
            reservation.record_check_in(actor, self.clock.now(), notes)
            reservation = await self.repository.update(reservation)

        logger.info("Check-in recorded for reservation %s by %s", reservation_id, actor)
        return reservation

    async def check_out(self, reservation_id: UUID, actor: str, notes: Optional[str] = None) -> Reservation:
        reservation = await self._get_reservation(reservation_id)
        async with self.locks.hold(reservation.room_id):
            reservation = await self._get_reservation(reservation_id)
            reservation.record_check_out(actor, self.clock.now(), notes)
            reservation = await self.repository.update(reservation)

        logger.info("Check-out recorded for reservation %s by %s; room freed", reservation_id, actor)
        return reservation

    async def stay_status(self, reservation_id: UUID) -> StayStatus:
        reservation = await self._get_reservation(reservation_id)
        return reservation.stay_status()

    async def list_stay_events(
        self,
        reservation_id: Optional[UUID] = None,
        kind: Optional[StayEventKind] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> List[StayEvent]:
        """Stay event log, newest first"""
        if reservation_id is not None:
            reservations = [await self._get_reservation(reservation_id)]
        else:
            reservations = await self.repository.find_all()

        events = [
            event
            for reservation in reservations
            for event in reservation.stay_events
            if (kind is None or event.kind == kind)
            and (since is None or event.recorded_at >= since)
            and (until is None or event.recorded_at <= until)
        ]
        return sorted(events, key=lambda e: e.recorded_at, reverse=True)


class AvailabilityService:
    """Read-only availability, occupancy and slot queries"""

    def __init__(
        self,
        room_repository: RoomRepository,
        reservation_repository: ReservationRepository,
        clock: Clock,
        opening_time: time = OPENING_TIME,
        step_minutes: int = SLOT_STEP_MINUTES
    ):
        self.room_repository = room_repository
        self.reservation_repository = reservation_repository
        self.clock = clock
        self.opening_time = opening_time
        self.step_minutes = step_minutes

    async def _get_room(self, room_id: UUID) -> Room:
        room = await self.room_repository.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def query_availability(
        self,
        start_date: date,
        end_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        capacity: Optional[int] = None,
        tariff_type: Optional[Union[TariffType, str]] = None,
        room_id: Optional[UUID] = None
    ) -> List[RoomAvailability]:
        """Per active room: is it free of blocking reservations over the interval?"""
        period = StayPeriod.create(start_date, end_date, start_time, end_time)
        period.ensure_clock_window()
        if tariff_type is not None:
            tariff_type = parse_tariff_type(tariff_type)
            span = period.occupied_span(tariff_type)
        else:
            span = period.requested_span()

        rooms = await self.room_repository.find_all(active=True)
        results = []
        for room in rooms:
            if room_id is not None and room.room_id != room_id:
                continue
            if capacity is not None and room.capacity < capacity:
                continue
            if tariff_type is not None and not room.offers(tariff_type):
                continue

            reservations = await self.reservation_repository.find_by_room(room.room_id)
            check = check_availability(room.room_id, span, reservations)
            results.append(RoomAvailability(
                room=room,
                available=check.available,
                conflicts=check.conflicts
            ))
        return results

    async def suggest_slots(self, room_id: UUID, day: date) -> List[SlotSuggestion]:
        """Feasible hourly starts for the day; a stale answer is re-validated on booking"""
        room = await self._get_room(room_id)
        if not room.offers(TariffType.HOUR):
            raise ValidationError(f"Room {room.code} does not offer hourly bookings", field="room_id")

        reservations = await self.reservation_repository.find_by_room(room_id)
        return suggest_slots(
            room_id,
            day,
            room.min_hours,
            reservations,
            now=self.clock.now(),
            opening_time=self.opening_time,
            step_minutes=self.step_minutes
        )

    async def room_occupancy(self, room_id: UUID) -> RoomOccupancy:
        """Occupied iff one of the room's reservations has an open check-in"""
        await self._get_room(room_id)
        reservations = await self.reservation_repository.find_by_room(room_id)
        if any(r.is_checked_in for r in reservations):
            return RoomOccupancy.OCCUPIED
        return RoomOccupancy.AVAILABLE
