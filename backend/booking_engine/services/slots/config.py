# backend/booking_engine/services/slots/config.py
"""
Booking rule defaults and time-of-day helpers for slots calculation.

All internal comparisons use minutes since midnight (24h, whole minutes).
The 12-hour form ("9:00 AM") exists only for display.
"""

import re
from dataclasses import dataclass
from datetime import datetime, time
from functools import lru_cache

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class BookingDefaults:
    """
    Fallbacks applied when a service leaves a scheduling field empty.

    Attributes:
        duration_minutes: Slot length
        buffer_minutes: Gap enforced after each slot
        max_concurrent_bookings: Capacity per slot
        min_advance_minutes: Earliest a slot can be booked before it starts (30 min)
        max_advance_minutes: Furthest ahead a slot can be booked (7 days)
        grace_period_minutes: Late arrival tolerance before a no-show
    """
    duration_minutes: int = 60
    buffer_minutes: int = 0
    max_concurrent_bookings: int = 1
    min_advance_minutes: int = 30
    max_advance_minutes: int = 7 * 24 * 60
    grace_period_minutes: int = 10

    def __post_init__(self):
        """Validate configuration."""
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {self.duration_minutes}")
        if self.max_concurrent_bookings <= 0:
            raise ValueError(
                f"max_concurrent_bookings must be positive, got {self.max_concurrent_bookings}"
            )
        if self.min_advance_minutes > self.max_advance_minutes:
            raise ValueError("min_advance_minutes cannot exceed max_advance_minutes")


@lru_cache
def get_booking_defaults() -> BookingDefaults:
    """Get booking defaults (singleton)."""
    return BookingDefaults()


@dataclass(frozen=True)
class ServiceRules:
    """Scheduling rules of one service with defaults applied."""
    service_id: int
    duration: int
    buffer_time: int
    max_concurrent: int
    min_advance: int
    max_advance: int
    grace_period: int
    booking_enabled: bool
    auto_confirm: bool
    auto_complete: bool

    @property
    def step(self) -> int:
        """Distance between consecutive slot starts."""
        return self.duration + self.buffer_time

    @classmethod
    def from_service(cls, service, defaults: BookingDefaults | None = None) -> "ServiceRules":
        defaults = defaults or get_booking_defaults()
        # Zero and NULL both mean "not configured"
        return cls(
            service_id=service.id,
            duration=service.duration or defaults.duration_minutes,
            buffer_time=max(service.buffer_time or defaults.buffer_minutes, 0),
            max_concurrent=service.max_concurrent_bookings or defaults.max_concurrent_bookings,
            min_advance=(
                service.min_advance_booking
                if service.min_advance_booking is not None
                else defaults.min_advance_minutes
            ),
            max_advance=service.max_advance_booking or defaults.max_advance_minutes,
            grace_period=(
                service.grace_period_minutes
                if service.grace_period_minutes is not None
                else defaults.grace_period_minutes
            ),
            booking_enabled=bool(service.booking_enabled),
            auto_confirm=bool(service.auto_confirm_bookings),
            auto_complete=service.auto_complete_on_duration is not False,
        )


# ── Time helpers ─────────────────────────────────────────────────────────


def time_str_to_minutes(value: str) -> int:
    """
    Convert "HH:MM" or "HH:MM:SS" to minutes since midnight.

    Seconds are dropped. Raises ValueError on anything else.
    """
    match = _TIME_24H.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time: {value!r}")
    return hour * 60 + minute


def parse_time_of_day(value) -> int:
    """
    Accept "HH:MM", "HH:MM:SS", "h:mm AM/PM" or datetime.time.

    Returns minutes since midnight, raises ValueError otherwise.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")

    match = _TIME_12H.match(value.strip())
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if not 1 <= hour <= 12 or minute > 59:
            raise ValueError(f"Invalid time: {value!r}")
        hour %= 12
        if match.group(3).upper() == "PM":
            hour += 12
        return hour * 60 + minute

    return time_str_to_minutes(value)


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_display_time(minutes: int) -> str:
    """Convert minutes since midnight to "h:mm AM/PM"."""
    hour, minute = divmod(minutes, 60)
    suffix = "AM" if hour < 12 else "PM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {suffix}"


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute
