"""Tests for booking lifecycle transitions."""

from datetime import datetime

import pytest

from booking_engine.models import BookingStatusHistory
from booking_engine.services.errors import InvalidTransition, NotFound
from booking_engine.services.lifecycle import CompletionMethod, LifecycleAction

from .conftest import NOW, make_booking


def at(hour: int) -> datetime:
    return datetime(2026, 10, 19, hour, 0)


@pytest.fixture
def pending(seed, service):
    return seed(make_booking(service, at(10), at(11), status="pending"))


def history_of(read_session_factory, booking_id: int) -> list[tuple]:
    db = read_session_factory()
    try:
        rows = (
            db.query(BookingStatusHistory)
            .filter_by(booking_id=booking_id)
            .order_by(BookingStatusHistory.id)
            .all()
        )
        return [(row.from_status, row.to_status, row.actor) for row in rows]
    finally:
        db.close()


class TestTransitions:

    def test_full_happy_path(self, lifecycle, pending, read_session_factory, events):
        lifecycle.confirm(pending.id, "merchant:7")
        lifecycle.check_in(pending.id, "staff:3")
        booking = lifecycle.complete(pending.id, "staff:3")

        assert booking.status == "completed"
        assert booking.confirmed_at == NOW
        assert booking.checked_in_at == NOW
        assert booking.completed_at == NOW
        assert booking.completion_method == CompletionMethod.MANUAL.value
        assert booking.updated_by == "staff:3"
        assert history_of(read_session_factory, pending.id) == [
            ("pending", "confirmed", "merchant:7"),
            ("confirmed", "in_progress", "staff:3"),
            ("in_progress", "completed", "staff:3"),
        ]
        assert [e["to_status"] for e in events.of_type("booking_status_changed")] == [
            "confirmed", "in_progress", "completed",
        ]

    def test_cancel_records_reason(self, lifecycle, pending):
        booking = lifecycle.cancel(pending.id, "customer:100", reason="Running late")

        assert booking.status == "cancelled"
        assert booking.cancelled_at == NOW
        assert booking.cancellation_reason == "Running late"

    def test_no_show_from_confirmed(self, lifecycle, pending):
        lifecycle.confirm(pending.id, "merchant:7")

        booking = lifecycle.mark_no_show(pending.id, "merchant:7", reason="Did not arrive")

        assert booking.status == "no_show"
        assert booking.no_show_reason == "Did not arrive"

    def test_automatic_completion_method(self, lifecycle, seed, service):
        booking = seed(make_booking(service, at(10), at(11), status="in_progress"))

        done = lifecycle.complete(booking.id, "system", method=CompletionMethod.AUTOMATIC)

        assert done.completion_method == "automatic"

    @pytest.mark.parametrize(
        "status, action",
        [
            ("pending", LifecycleAction.CHECK_IN),
            ("pending", LifecycleAction.NO_SHOW),
            ("confirmed", LifecycleAction.COMPLETE),
            ("completed", LifecycleAction.CANCEL),
            ("cancelled", LifecycleAction.CONFIRM),
            ("no_show", LifecycleAction.CHECK_IN),
        ],
    )
    def test_invalid_transitions(self, lifecycle, seed, service, read_session_factory, status, action):
        booking = seed(make_booking(service, at(10), at(11), status=status))

        with pytest.raises(InvalidTransition):
            lifecycle.transition(booking.id, action, "merchant:7")

        assert history_of(read_session_factory, booking.id) == []

    def test_invalid_transition_is_business_rule(self, lifecycle, pending):
        lifecycle.cancel(pending.id, "customer:100")

        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.confirm(pending.id, "merchant:7")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Cannot confirm a booking that is cancelled"

    def test_missing_booking(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.confirm(404, "merchant:7")
