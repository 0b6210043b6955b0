# backend/booking_engine/services/results.py
"""
Tagged result types returned by the availability and reservation surfaces.

Each result is a closed union of a success and a failure dataclass; callers
branch with isinstance() instead of probing optional keys.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Union

from .errors import BookingEngineError, FailureKind


@dataclass(frozen=True)
class BookingRules:
    """Scheduling rules echoed to clients so they can explain the grid."""
    max_concurrent_bookings: int
    service_duration: int
    buffer_time: int
    min_advance_booking: int
    max_advance_booking: int


@dataclass(frozen=True)
class StoreInfo:
    name: str
    location: str | None
    opening_time: str  # "9:00 AM"
    closing_time: str
    working_days: tuple[str, ...]  # title-cased, weekday order


@dataclass(frozen=True)
class SlotView:
    start: str  # "HH:MM"
    end: str
    time: str  # "9:00 AM"
    available: int
    total: int
    booked: int


# ── listSlots ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SlotsAvailable:
    service_id: int
    date: date
    slots: tuple[SlotView, ...]
    booking_rules: BookingRules
    store_info: StoreInfo
    success: Literal[True] = True

    @property
    def available_slots(self) -> list[str]:
        return [slot.time for slot in self.slots]


@dataclass(frozen=True)
class SlotsUnavailable:
    kind: FailureKind
    reason: str
    status_code: int
    store_info: StoreInfo | None = None
    success: Literal[False] = False

    @classmethod
    def from_error(cls, error: BookingEngineError, store_info: StoreInfo | None = None) -> "SlotsUnavailable":
        return cls(
            kind=error.kind,
            reason=error.detail,
            status_code=error.status_code,
            store_info=store_info,
        )


SlotsResult = Union[SlotsAvailable, SlotsUnavailable]


# ── checkSlot ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SlotOpen:
    remaining: int
    total: int
    available: Literal[True] = True


@dataclass(frozen=True)
class SlotClosed:
    kind: FailureKind
    reason: str
    available: Literal[False] = False


SlotCheckResult = Union[SlotOpen, SlotClosed]


# ── reserve ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Reserved:
    booking: object  # committed Bookings row (detached)
    success: Literal[True] = True


@dataclass(frozen=True)
class ReservationRejected:
    error: BookingEngineError
    success: Literal[False] = False

    @property
    def kind(self) -> FailureKind:
        return self.error.kind

    @property
    def reason(self) -> str:
        return self.error.detail


ReservationResult = Union[Reserved, ReservationRejected]


@dataclass
class SweepReport:
    """Outcome of one lifecycle sweep."""
    completed: list[int] = field(default_factory=list)
    no_shows: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
