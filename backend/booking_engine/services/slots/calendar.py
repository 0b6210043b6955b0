# backend/booking_engine/services/slots/calendar.py
"""
Store operating calendar.

Store working days arrive in whatever shape the merchant tools saved:
  - native list:        ["Monday", "tuesday"]
  - JSON string:        '["Monday","Tuesday"]'
  - comma string:       "monday, Tuesday,WEDNESDAY"
  - three-letter names: "mon,tue"

They are normalized here, once, to a frozenset of lowercase weekday names.
Nothing past this module sees the raw encoding.

A missing or empty configuration is a business condition, not a fault:
the store is closed on every date and the decision says why.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_ABBREVIATIONS = {name[:3]: name for name in WEEKDAYS}
_STRIP_CHARS = " \t\r\n[]\"'"


@dataclass(frozen=True)
class OperatingWindow:
    """Raw opening/closing strings of the store; parsed by SlotGrid."""
    opens: str | None
    closes: str | None


@dataclass(frozen=True)
class OpeningDecision:
    open: bool
    window: OperatingWindow | None = None
    reason: str | None = None
    weekday: str | None = None


def normalize_working_days(raw) -> frozenset[str]:
    """Canonical lowercase weekday set. Never raises; unknown entries are dropped."""
    if raw is None:
        return frozenset()

    if isinstance(raw, str):
        items = _split_working_days(raw)
    elif isinstance(raw, (list, tuple, set, frozenset)):
        items = list(raw)
    else:
        return frozenset()

    days = set()
    for item in items:
        if not isinstance(item, str):
            continue
        name = item.strip(_STRIP_CHARS).lower()
        name = _ABBREVIATIONS.get(name, name)
        if name in WEEKDAYS:
            days.add(name)
    return frozenset(days)


def _split_working_days(raw: str) -> list:
    raw = raw.strip()
    if not raw:
        return []

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return raw.split(",")

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, str):
        # Double-encoded value: '"monday,tuesday"'
        return parsed.split(",")
    return []


def format_working_days(days: frozenset[str]) -> list[str]:
    """Title-cased names in weekday order: ["Monday", "Friday"]."""
    return [name.capitalize() for name in WEEKDAYS if name in days]


class OperatingCalendar:
    """Answers "is the store open on date D, and during what window?"."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def working_days(self, store) -> frozenset[str]:
        return normalize_working_days(store.working_days)

    def is_open(self, store, target_date: date) -> OpeningDecision:
        # Past dates compare by local calendar day, not wall-clock
        if target_date < self._clock().date():
            return OpeningDecision(open=False, reason="Cannot book slots for past dates")

        if store.status and store.status != "active":
            return OpeningDecision(open=False, reason="Store is not currently accepting bookings")

        days = self.working_days(store)
        if not days:
            return OpeningDecision(open=False, reason="Store working days not configured")

        weekday = WEEKDAYS[target_date.weekday()]
        if weekday not in days:
            open_days = ", ".join(format_working_days(days))
            return OpeningDecision(
                open=False,
                reason=f"Store is closed on {weekday.capitalize()}. Open days: {open_days}",
                weekday=weekday,
            )

        return OpeningDecision(
            open=True,
            window=OperatingWindow(opens=store.opening_time, closes=store.closing_time),
            weekday=weekday,
        )
