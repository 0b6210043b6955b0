"""Tests for working-day normalization and the store operating calendar."""

from datetime import date

import pytest

from booking_engine.services.slots import OperatingCalendar, normalize_working_days

from .conftest import MONDAY, NOW, SUNDAY, FrozenClock, make_store

MON_TUE = frozenset({"monday", "tuesday"})


class TestNormalizeWorkingDays:

    @pytest.mark.parametrize(
        "raw",
        [
            ["Monday", "tuesday"],
            ("MONDAY", "Tuesday"),
            '["Monday","Tuesday"]',
            "monday, Tuesday",
            "mon,TUE",
            '"monday,tuesday"',
        ],
    )
    def test_encodings_normalize_to_same_set(self, raw):
        assert normalize_working_days(raw) == MON_TUE

    @pytest.mark.parametrize("raw", [None, "", "   ", "[]", [], 42, '{"monday": true}'])
    def test_empty_or_unusable_config_is_empty(self, raw):
        assert normalize_working_days(raw) == frozenset()

    def test_unknown_entries_are_dropped(self):
        assert normalize_working_days(["monday", "funday", 3]) == frozenset({"monday"})


class TestOperatingCalendar:

    def setup_method(self):
        self.calendar = OperatingCalendar(FrozenClock(NOW))

    def test_open_weekday_returns_window(self):
        decision = self.calendar.is_open(make_store(), MONDAY)

        assert decision.open
        assert decision.window.opens == "09:00"
        assert decision.window.closes == "17:00"
        assert decision.weekday == "monday"

    def test_closed_weekday_names_open_days(self):
        store = make_store(working_days="monday,tuesday")

        decision = self.calendar.is_open(store, date(2026, 10, 25))

        assert not decision.open
        assert decision.reason == "Store is closed on Sunday. Open days: Monday, Tuesday"

    def test_today_is_not_past(self):
        store = make_store(working_days='["sunday"]')

        assert self.calendar.is_open(store, SUNDAY).open

    def test_past_date_is_closed(self):
        decision = self.calendar.is_open(make_store(), date(2026, 10, 16))

        assert not decision.open
        assert decision.reason == "Cannot book slots for past dates"

    def test_missing_working_days_closes_every_date(self):
        decision = self.calendar.is_open(make_store(working_days=None), MONDAY)

        assert not decision.open
        assert decision.reason == "Store working days not configured"

    def test_inactive_store_is_closed(self):
        decision = self.calendar.is_open(make_store(status="suspended"), MONDAY)

        assert not decision.open
        assert decision.reason == "Store is not currently accepting bookings"
