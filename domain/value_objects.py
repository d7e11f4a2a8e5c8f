"""Domain Value Objects"""
from pydantic import BaseModel, Field
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID
from typing import Optional, List

from domain.enums import TariffType, StayState
from domain.exceptions import ValidationError

DEFAULT_MIN_HOURS = 3
LAST_INSTANT_OF_DAY = time(23, 59, 59)
NIGHT_CHECKOUT_TIME = time(12, 0)


class Money(BaseModel):
    """Value Object for monetary amounts"""
    amount: Decimal = Field(ge=0)
    currency: str = "BOB"

    class Config:
        frozen = True


class RoomRates(BaseModel):
    """Per-unit prices; a missing or zero rate means the tariff is not offered"""
    hourly: Optional[Decimal] = Field(default=None, ge=0)
    nightly: Optional[Decimal] = Field(default=None, ge=0)
    monthly: Optional[Decimal] = Field(default=None, ge=0)

    class Config:
        frozen = True

    def rate_for(self, tariff_type: TariffType) -> Optional[Decimal]:
        rate = {
            TariffType.HOUR: self.hourly,
            TariffType.NIGHT: self.nightly,
            TariffType.MONTH: self.monthly,
        }[tariff_type]
        return rate if rate else None

    def offers(self, tariff_type: TariffType) -> bool:
        return self.rate_for(tariff_type) is not None

    def offered_tariffs(self) -> List[TariffType]:
        return [t for t in TariffType if self.offers(t)]


class TimeSpan(BaseModel):
    """Half-open [start, end) interval of wall-clock time"""
    start: datetime
    end: datetime

    class Config:
        frozen = True

    def overlaps(self, other: "TimeSpan") -> bool:
        """Touching endpoints never overlap"""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class StayPeriod(BaseModel):
    """Requested dates plus optional clock times (hourly bookings)"""
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    class Config:
        frozen = True

    @staticmethod
    def create(
        start_date: date,
        end_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None
    ) -> "StayPeriod":
        """Create a period, rejecting inverted dates and half-given clock times"""
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        if (start_time is None) != (end_time is None):
            raise ValidationError(
                "start_time and end_time must be given together",
                field="start_time" if start_time is None else "end_time"
            )
        return StayPeriod(
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time
        )

    @property
    def has_clock_times(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def calendar_days(self) -> int:
        return (self.end_date - self.start_date).days

    def clock_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start

    def full_day_span(self) -> TimeSpan:
        return TimeSpan(
            start=datetime.combine(self.start_date, time.min),
            end=datetime.combine(self.end_date, LAST_INSTANT_OF_DAY)
        )

    def clock_span(self) -> TimeSpan:
        return TimeSpan(
            start=datetime.combine(self.start_date, self.start_time),
            end=datetime.combine(self.start_date, self.end_time)
        )

    def ensure_clock_window(self) -> None:
        """Clock times describe one window on a single day: same date, end after start"""
        if not self.has_clock_times:
            return
        if self.end_date != self.start_date:
            raise ValidationError(
                "Clock-time windows must start and end on the same date",
                field="end_date"
            )
        if self.end_time <= self.start_time:
            raise ValidationError(
                "end_time must be after start_time; clock-time windows cannot cross midnight",
                field="end_time"
            )

    def requested_span(self) -> TimeSpan:
        """Span of an availability query that carries no tariff type"""
        if self.has_clock_times:
            self.ensure_clock_window()
            return self.clock_span()
        return self.full_day_span()

    def occupied_span(self, tariff_type: TariffType) -> TimeSpan:
        """Span a reservation of this tariff type keeps the room for"""
        if tariff_type == TariffType.HOUR and self.has_clock_times:
            return self.clock_span()
        return self.full_day_span()


class Quote(BaseModel):
    """Price computed for a tariff type and period"""
    tariff_type: TariffType
    unit_count: int = Field(ge=0)
    unit_rate: Decimal
    total: Money

    class Config:
        frozen = True


class ReservationConflict(BaseModel):
    """A blocking reservation overlapping a candidate interval"""
    reservation_id: UUID
    tariff_type: TariffType
    starts_at: datetime
    frees_at: datetime

    class Config:
        frozen = True


class AvailabilityCheck(BaseModel):
    available: bool
    conflicts: List[ReservationConflict] = []

    class Config:
        frozen = True


class SlotSuggestion(BaseModel):
    """Feasible start time for an hourly booking"""
    start: time
    minimum_end: time
    maximum_end: time

    class Config:
        frozen = True


class StayStatus(BaseModel):
    """Stay state derived from a reservation's event log"""
    reservation_id: UUID
    state: StayState
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    checkout_ceiling: Optional[datetime] = None

    class Config:
        frozen = True
