"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional, List, Dict, FrozenSet, Union

from domain.enums import (
    ReservationStatus, TariffType, StayEventKind, StayState,
    BLOCKING_STATUSES, TERMINAL_STATUSES
)
from domain.exceptions import ValidationError, ConflictError, StateError, ExpiredError
from domain.tariffs import calculate_quote, ensure_minimum_duration, parse_tariff_type
from domain.value_objects import (
    DEFAULT_MIN_HOURS, LAST_INSTANT_OF_DAY, NIGHT_CHECKOUT_TIME,
    Money, RoomRates, StayPeriod, StayStatus, TimeSpan
)


ALLOWED_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CANCELLED,
        ReservationStatus.RELEASED,
        ReservationStatus.COMPLETED,
    }),
}


class Room(BaseModel):
    """Room Aggregate Root Entity"""

    room_id: UUID = Field(default_factory=uuid4)
    code: str
    name: str
    capacity: int = Field(ge=1, default=1)
    rates: RoomRates
    min_hours: int = Field(ge=1, default=DEFAULT_MIN_HOURS)
    description: Optional[str] = None
    active: bool = True

    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    version: int = 1

    class Config:
        from_attributes = True

    @staticmethod
    def create(
        code: str,
        name: str,
        rates: RoomRates,
        capacity: int = 1,
        min_hours: Optional[int] = None,
        description: Optional[str] = None
    ) -> "Room":
        """Create new room; at least one tariff must be priced"""
        if not code or not code.strip():
            raise ValidationError("Room code is required", field="code")
        if not rates.offered_tariffs():
            raise ValidationError(
                "At least one rate (hourly, nightly or monthly) must be set",
                field="rates"
            )
        if capacity < 1:
            raise ValidationError("Capacity must be at least 1", field="capacity")
        if min_hours is not None and min_hours < 1:
            raise ValidationError("Minimum hours must be at least 1", field="min_hours")

        return Room(
            code=code.strip(),
            name=name,
            rates=rates,
            capacity=capacity,
            min_hours=min_hours or DEFAULT_MIN_HOURS,
            description=description
        )

    def offers(self, tariff_type: TariffType) -> bool:
        return self.rates.offers(tariff_type)

    def update(
        self,
        now: datetime,
        name: Optional[str] = None,
        rates: Optional[RoomRates] = None,
        capacity: Optional[int] = None,
        min_hours: Optional[int] = None,
        description: Optional[str] = None
    ) -> None:
        """Edit pricing and details; reservations already made keep their totals"""
        if name is not None and not name.strip():
            raise ValidationError("Room name cannot be empty", field="name")
        if rates is not None and not rates.offered_tariffs():
            raise ValidationError(
                "At least one rate (hourly, nightly or monthly) must be set",
                field="rates"
            )
        if capacity is not None and capacity < 1:
            raise ValidationError("Capacity must be at least 1", field="capacity")
        if min_hours is not None and min_hours < 1:
            raise ValidationError("Minimum hours must be at least 1", field="min_hours")

        if name is not None:
            self.name = name
        if rates is not None:
            self.rates = rates
        if capacity is not None:
            self.capacity = capacity
        if min_hours is not None:
            self.min_hours = min_hours
        if description is not None:
            self.description = description
        self.modified_at = now
        self.version += 1

    def set_active(self, active: bool, now: datetime) -> None:
        self.active = active
        self.modified_at = now
        self.version += 1


class StayEvent(BaseModel):
    """Child Entity: one check-in or check-out record"""
    event_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    kind: StayEventKind
    recorded_at: datetime
    recorded_by: str
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    confirmation_code: str

    # References to other contexts
    room_id: UUID
    guest_id: UUID

    # Value Objects
    period: StayPeriod
    tariff_type: TariffType
    unit_count: int
    total_amount: Money
    guest_count: int = 1
    payment_reference: Optional[str] = None

    # Status
    status: ReservationStatus = ReservationStatus.PENDING

    # Append-only stay log
    stay_events: List[StayEvent] = []

    # Metadata
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    created_by: str = "SYSTEM"
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        room: Room,
        guest_id: UUID,
        period: StayPeriod,
        tariff_type: Union[TariffType, str],
        now: datetime,
        status: ReservationStatus = ReservationStatus.PENDING,
        payment_reference: Optional[str] = None,
        guest_count: int = 1,
        created_by: str = "SYSTEM"
    ) -> "Reservation":
        """Create new reservation; units and total always come from the room's rates"""
        if status not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            raise StateError(f"Reservations cannot be created as {status.value}")
        if not room.active:
            raise ValidationError(f"Room {room.code} is not active", field="room_id")
        if guest_count < 1:
            raise ValidationError("At least 1 guest is required", field="guest_count")
        if guest_count > room.capacity:
            raise ValidationError(
                f"Room {room.code} holds at most {room.capacity} guests",
                field="guest_count"
            )
        if period.start_date < now.date():
            raise ValidationError("start_date must be today or later", field="start_date")

        tariff_type = parse_tariff_type(tariff_type)
        quote = calculate_quote(room.rates, room.min_hours, tariff_type, period)
        if tariff_type == TariffType.HOUR:
            ensure_minimum_duration(period, room.min_hours)

        return Reservation(
            confirmation_code=Reservation._generate_confirmation_code(),
            room_id=room.room_id,
            guest_id=guest_id,
            period=period,
            tariff_type=tariff_type,
            unit_count=quote.unit_count,
            total_amount=quote.total,
            guest_count=guest_count,
            payment_reference=payment_reference,
            status=status,
            created_at=now,
            modified_at=now,
            created_by=created_by
        )

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(self, target: ReservationStatus, actor: str, now: datetime) -> None:
        """Manual staff transition; completion only happens through check-out"""
        if target == ReservationStatus.CONFIRMED:
            self.confirm(now)
        elif target == ReservationStatus.CANCELLED:
            self.cancel(now)
        elif target == ReservationStatus.RELEASED:
            self.release(actor, now)
        elif target == ReservationStatus.COMPLETED:
            raise StateError("Reservations are completed by checking the guest out")
        else:
            raise StateError(
                f"Cannot change reservation from {self.status.value} to {target.value}"
            )

    def confirm(self, now: datetime) -> None:
        self._ensure_transition(ReservationStatus.CONFIRMED)
        self._set_status(ReservationStatus.CONFIRMED, now)

    def cancel(self, now: datetime) -> None:
        self._ensure_transition(ReservationStatus.CANCELLED)
        if self.is_checked_in:
            raise StateError("Cannot cancel a reservation while the guest is checked in")
        self._set_status(ReservationStatus.CANCELLED, now)

    def release(self, actor: str, now: datetime) -> None:
        """Free the room; an open stay is closed with a check-out event"""
        self._ensure_transition(ReservationStatus.RELEASED)
        if self.is_checked_in:
            self._append_event(StayEventKind.CHECK_OUT, actor, now, "Closed by release")
        self._set_status(ReservationStatus.RELEASED, now)

    def record_check_in(self, actor: str, now: datetime, notes: Optional[str] = None) -> StayEvent:
        """Open the stay"""
        if self.status != ReservationStatus.CONFIRMED:
            raise StateError(
                f"Only confirmed reservations can check in (status is {self.status.value})"
            )
        if self.is_checked_in:
            raise ConflictError("The guest is already checked in for this reservation")
        deadline = self.check_in_deadline()
        if now > deadline:
            raise ExpiredError(f"Check-in window closed at {deadline.isoformat()}")

        event = self._append_event(StayEventKind.CHECK_IN, actor, now, notes)
        self.modified_at = now
        self.version += 1
        return event

    def record_check_out(self, actor: str, now: datetime, notes: Optional[str] = None) -> StayEvent:
        """Close the stay and complete the reservation"""
        if not self.is_checked_in:
            raise StateError("There is no open check-in for this reservation")
        self._ensure_transition(ReservationStatus.COMPLETED)

        event = self._append_event(StayEventKind.CHECK_OUT, actor, now, notes)
        self._set_status(ReservationStatus.COMPLETED, now)
        return event

    # ==================== QUERY METHODS ====================
    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def latest_stay_event(self) -> Optional[StayEvent]:
        if not self.stay_events:
            return None
        # Ties on timestamp go to the later append
        _, event = max(enumerate(self.stay_events), key=lambda pair: (pair[1].recorded_at, pair[0]))
        return event

    @property
    def stay_state(self) -> StayState:
        latest = self.latest_stay_event
        if latest is None:
            return StayState.NOT_CHECKED_IN
        if latest.kind == StayEventKind.CHECK_IN:
            return StayState.CHECKED_IN
        return StayState.CHECKED_OUT

    @property
    def is_checked_in(self) -> bool:
        return self.stay_state == StayState.CHECKED_IN

    def can_transition_to(self, target: ReservationStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def occupied_span(self) -> TimeSpan:
        return self.period.occupied_span(self.tariff_type)

    def checkout_ceiling(self) -> Optional[datetime]:
        """Night and month stays must leave by noon on the end date"""
        if self.tariff_type in (TariffType.NIGHT, TariffType.MONTH):
            return datetime.combine(self.period.end_date, NIGHT_CHECKOUT_TIME)
        return None

    def check_in_deadline(self) -> datetime:
        ceiling = self.checkout_ceiling()
        if ceiling is not None:
            return ceiling
        if self.period.has_clock_times:
            return datetime.combine(self.period.start_date, self.period.end_time)
        return datetime.combine(self.period.end_date, LAST_INSTANT_OF_DAY)

    def stay_status(self) -> StayStatus:
        check_ins = [e.recorded_at for e in self.stay_events if e.kind == StayEventKind.CHECK_IN]
        check_outs = [e.recorded_at for e in self.stay_events if e.kind == StayEventKind.CHECK_OUT]
        return StayStatus(
            reservation_id=self.reservation_id,
            state=self.stay_state,
            checked_in_at=max(check_ins) if check_ins else None,
            checked_out_at=max(check_outs) if check_outs else None,
            checkout_ceiling=self.checkout_ceiling()
        )

    # ==================== PRIVATE METHODS ====================
    def _ensure_transition(self, target: ReservationStatus) -> None:
        if not self.can_transition_to(target):
            raise StateError(
                f"Cannot change reservation from {self.status.value} to {target.value}"
            )

    def _set_status(self, status: ReservationStatus, now: datetime) -> None:
        self.status = status
        self.modified_at = now
        self.version += 1

    def _append_event(
        self,
        kind: StayEventKind,
        actor: str,
        now: datetime,
        notes: Optional[str]
    ) -> StayEvent:
        # Stamps never precede the latest event, even if the wall clock steps back
        latest = self.latest_stay_event
        recorded_at = max(now, latest.recorded_at) if latest is not None else now
        event = StayEvent(
            reservation_id=self.reservation_id,
            kind=kind,
            recorded_at=recorded_at,
            recorded_by=actor,
            notes=notes
        )
        self.stay_events.append(event)
        return event

    @staticmethod
    def _generate_confirmation_code() -> str:
        """Generate unique confirmation code"""
        import random
        import string
        return ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))
