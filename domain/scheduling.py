"""Interval overlap checking and hourly slot suggestions

Both work on a snapshot of reservations handed in by the caller; neither reads
or writes storage. Callers that act on the answer must hold the room lock.
"""
from datetime import date, datetime, time, timedelta
from typing import AbstractSet, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.entities import Reservation
from domain.enums import ReservationStatus, TariffType, BLOCKING_STATUSES
from domain.value_objects import (
    AvailabilityCheck, ReservationConflict, SlotSuggestion, TimeSpan
)

OPENING_TIME = time(6, 0)
SLOT_STEP_MINUTES = 15
END_OF_DAY_MINUTE = 23 * 60 + 59

MinuteRange = Tuple[int, int]


# ==================== OVERLAP CHECKER ====================

def find_conflicts(
    room_id: UUID,
    span: TimeSpan,
    reservations: Iterable[Reservation],
    blocking_statuses: AbstractSet[ReservationStatus] = BLOCKING_STATUSES,
    exclude_id: Optional[UUID] = None
) -> List[ReservationConflict]:
    """Blocking reservations of this room whose occupied span overlaps ``span``"""
    conflicts = []
    for reservation in reservations:
        if reservation.room_id != room_id:
            continue
        if exclude_id is not None and reservation.reservation_id == exclude_id:
            continue
        if reservation.status not in blocking_statuses:
            continue

        occupied = reservation.occupied_span()
        if occupied.overlaps(span):
            conflicts.append(ReservationConflict(
                reservation_id=reservation.reservation_id,
                tariff_type=reservation.tariff_type,
                starts_at=occupied.start,
                frees_at=occupied.end
            ))

    return sorted(conflicts, key=lambda c: c.starts_at)


def check_availability(
    room_id: UUID,
    span: TimeSpan,
    reservations: Iterable[Reservation],
    blocking_statuses: AbstractSet[ReservationStatus] = BLOCKING_STATUSES,
    exclude_id: Optional[UUID] = None
) -> AvailabilityCheck:
    conflicts = find_conflicts(room_id, span, reservations, blocking_statuses, exclude_id)
    return AvailabilityCheck(available=not conflicts, conflicts=conflicts)


# ==================== SLOT SUGGESTIONS ====================

def _minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def _as_time(minute: int) -> time:
    hours, minutes = divmod(minute, 60)
    return time(hours, minutes)


def _round_up(minute: int, step: int) -> int:
    return -(-minute // step) * step


def _next_whole_minute(moment: datetime) -> int:
    """Minute of day at or after ``moment``; a started minute counts as past"""
    minute = _minute_of_day(moment.time())
    if moment.second or moment.microsecond:
        minute += 1
    return minute


def occupied_clock_ranges(
    room_id: UUID,
    day: date,
    reservations: Iterable[Reservation],
    blocking_statuses: AbstractSet[ReservationStatus] = BLOCKING_STATUSES
) -> Optional[List[MinuteRange]]:
    """Clock ranges (minutes of day) taken on ``day``; None if the whole day is taken"""
    whole_day = TimeSpan(
        start=datetime.combine(day, time.min),
        end=datetime.combine(day + timedelta(days=1), time.min)
    )
    by_id = {r.reservation_id: r for r in reservations}
    ranges = []
    for conflict in find_conflicts(room_id, whole_day, by_id.values(), blocking_statuses):
        reservation = by_id[conflict.reservation_id]
        if reservation.tariff_type != TariffType.HOUR or not reservation.period.has_clock_times:
            return None
        ranges.append((
            _minute_of_day(conflict.starts_at.time()),
            _minute_of_day(conflict.frees_at.time())
        ))

    return sorted(ranges)


def suggest_slots(
    room_id: UUID,
    day: date,
    min_hours: int,
    reservations: Iterable[Reservation],
    now: datetime,
    opening_time: time = OPENING_TIME,
    step_minutes: int = SLOT_STEP_MINUTES,
    blocking_statuses: AbstractSet[ReservationStatus] = BLOCKING_STATUSES
) -> List[SlotSuggestion]:
    """Every feasible hourly start on ``day``, ascending"""
    if day < now.date():
        return []

    occupied = occupied_clock_ranges(room_id, day, reservations, blocking_statuses)
    if occupied is None:
        return []

    first = _minute_of_day(opening_time)
    if day == now.date():
        first = max(first, _round_up(_next_whole_minute(now), step_minutes))

    duration = min_hours * 60
    suggestions = []
    start = first
    while start + duration <= END_OF_DAY_MINUTE:
        minimum_end = start + duration
        blocked = any(start < busy_end and busy_start < minimum_end for busy_start, busy_end in occupied)
        if not blocked:
            maximum_end = min(
                (busy_start for busy_start, _ in occupied if busy_start > start),
                default=END_OF_DAY_MINUTE
            )
            suggestions.append(SlotSuggestion(
                start=_as_time(start),
                minimum_end=_as_time(minimum_end),
                maximum_end=_as_time(maximum_end)
            ))
        start += step_minutes

    return suggestions
