# backend/booking_engine/services/slots/ledger.py
"""
Capacity ledger.

Capacity is service-scoped: direct bookings of a service and bookings made
through any of its offers draw from one pool of `max_concurrent_bookings`.

    available = max(0, max_concurrent - overlapping)
    overlap   = booking_start < slot_end AND booking_end > slot_start
"""

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from ..repositories import BookingRepository
from .calculator import Slot


@dataclass(frozen=True)
class Occupancy:
    booking_id: int
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class SlotCapacity:
    slot: Slot
    total: int
    booked: int

    @property
    def available(self) -> int:
        return max(0, self.total - self.booked)


class CapacityLedger:

    def __init__(self, bookings: BookingRepository):
        self.bookings = bookings

    def occupancy(self, db: Session, service_id: int, target_date: date) -> list[Occupancy]:
        """Active bookings of the service pool on target_date."""
        return [
            Occupancy(booking_id=b.id, start=b.start_time, end=b.end_time)
            for b in self.bookings.for_day(db, service_id, target_date)
        ]

    @staticmethod
    def overlap_count(occupancy: list[Occupancy], start: datetime, end: datetime) -> int:
        return sum(1 for occ in occupancy if occ.overlaps(start, end))

    def capacity_for(
        self,
        slots: list[Slot],
        occupancy: list[Occupancy],
        target_date: date,
        max_concurrent: int,
    ) -> list[SlotCapacity]:
        """Remaining capacity for each candidate slot, in grid order."""
        result = []
        for slot in slots:
            booked = self.overlap_count(
                occupancy,
                slot.starts_at(target_date),
                slot.ends_at(target_date),
            )
            result.append(SlotCapacity(slot=slot, total=max_concurrent, booked=booked))
        return result
