"""Tariff & duration calculation

Pure functions turning a stay period, tariff type and room rates into a unit
count and total price. There is exactly one unit calculator per TariffType.
"""
import math
from decimal import Decimal
from typing import Callable, Dict, Union

from domain.enums import TariffType
from domain.exceptions import ValidationError
from domain.value_objects import Money, Quote, RoomRates, StayPeriod

DAYS_PER_MONTH = 30


def parse_tariff_type(value: Union[TariffType, str]) -> TariffType:
    """Accept an enum member or its (case-insensitive) name"""
    if isinstance(value, TariffType):
        return value
    try:
        return TariffType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in TariffType)
        raise ValidationError(
            f"Unknown tariff type '{value}', expected one of: {allowed}",
            field="tariff_type"
        )


def _hourly_units(period: StayPeriod, min_hours: int) -> int:
    if not period.has_clock_times:
        return min_hours

    period.ensure_clock_window()
    return max(math.ceil(period.clock_minutes() / 60), min_hours)


def _nightly_units(period: StayPeriod, min_hours: int) -> int:
    return max(period.calendar_days(), 1)


def _monthly_units(period: StayPeriod, min_hours: int) -> int:
    return max(math.ceil(period.calendar_days() / DAYS_PER_MONTH), 1)


_UNIT_CALCULATORS: Dict[TariffType, Callable[[StayPeriod, int], int]] = {
    TariffType.HOUR: _hourly_units,
    TariffType.NIGHT: _nightly_units,
    TariffType.MONTH: _monthly_units,
}

_missing = set(TariffType) - set(_UNIT_CALCULATORS)
if _missing:
    raise RuntimeError(f"No unit calculator for tariff types: {sorted(t.value for t in _missing)}")


def calculate_units(tariff_type: TariffType, period: StayPeriod, min_hours: int) -> int:
    return _UNIT_CALCULATORS[parse_tariff_type(tariff_type)](period, min_hours)


def calculate_quote(
    rates: RoomRates,
    min_hours: int,
    tariff_type: Union[TariffType, str],
    period: StayPeriod,
    currency: str = "BOB"
) -> Quote:
    """Compute unit count and total; never touches storage"""
    tariff_type = parse_tariff_type(tariff_type)

    rate = rates.rate_for(tariff_type)
    if rate is None:
        raise ValidationError(
            f"Room does not offer a {tariff_type.value} rate",
            field="tariff_type"
        )

    unit_count = calculate_units(tariff_type, period, min_hours)
    total = Decimal(rate) * unit_count

    return Quote(
        tariff_type=tariff_type,
        unit_count=unit_count,
        unit_rate=Decimal(rate),
        total=Money(amount=total, currency=currency)
    )


def ensure_minimum_duration(period: StayPeriod, min_hours: int) -> None:
    """Bookings with explicit clock times must cover the room's minimum hours"""
    if not period.has_clock_times:
        return
    if period.clock_minutes() < min_hours * 60:
        raise ValidationError(
            f"Hourly bookings must last at least {min_hours} hours",
            field="end_time"
        )
