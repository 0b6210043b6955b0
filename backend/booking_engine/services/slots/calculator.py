# backend/booking_engine/services/slots/calculator.py
"""
Slot grid calculation.

Produces the ordered candidate slots of one service for one operating window:

  opens ──[duration]── +buffer ──[duration]── +buffer ── ... ── closes

A step is emitted only while its end does not pass `closes`.

Contains:
✓ store opening window (from OperatingCalendar)
✓ service duration and buffer time

Does NOT contain:
✗ Bookings (CapacityLedger)
✗ Advance-booking window (checked at reservation)
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .calendar import OperatingWindow
from .config import (
    MINUTES_PER_DAY,
    ServiceRules,
    format_display_time,
    minutes_to_time_str,
    time_str_to_minutes,
)


@dataclass(frozen=True)
class Slot:
    """Candidate booking window, minutes since midnight."""
    start: int
    end: int

    @property
    def start_str(self) -> str:
        return minutes_to_time_str(self.start)

    @property
    def end_str(self) -> str:
        return minutes_to_time_str(self.end)

    @property
    def display(self) -> str:
        return format_display_time(self.start)

    def starts_at(self, target_date: date) -> datetime:
        return datetime.combine(target_date, datetime.min.time()) + timedelta(minutes=self.start)

    def ends_at(self, target_date: date) -> datetime:
        return datetime.combine(target_date, datetime.min.time()) + timedelta(minutes=self.end)


class SlotGrid:
    """Turns service rules plus an operating window into candidate slots."""

    def generate(self, rules: ServiceRules, window: OperatingWindow) -> list[Slot]:
        """
        Returns:
            Ordered slots. Empty list = service not bookable that day
            (unparseable hours, closing not after opening, or no room for one slot).
        """
        try:
            opens = time_str_to_minutes(window.opens)
            closes = time_str_to_minutes(window.closes)
        except (TypeError, ValueError):
            return []

        # "24:00" is not accepted; the grid never crosses midnight
        closes = min(closes, MINUTES_PER_DAY)
        if closes <= opens or rules.duration <= 0:
            return []

        slots: list[Slot] = []
        t = opens
        while t + rules.duration <= closes:
            slots.append(Slot(start=t, end=t + rules.duration))
            t += rules.step

        return slots

    @staticmethod
    def find(slots: list[Slot], start_minute: int) -> Slot | None:
        """Slot whose start equals start_minute, if it is on the grid."""
        for slot in slots:
            if slot.start == start_minute:
                return slot
        return None
