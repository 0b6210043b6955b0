"""Tests for the reservation transaction."""

import json
from datetime import datetime

from booking_engine.models import BookingStatusHistory, Bookings
from booking_engine.services.errors import (
    BusinessRuleViolation,
    FailureKind,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from booking_engine.services.reservations import ReservationRequest
from booking_engine.services.results import ReservationRejected, Reserved

from .conftest import (
    make_assignment,
    make_booking,
    make_branch,
    make_offer,
    make_service,
    make_staff,
    make_store,
)


def at(hour: int, minute: int = 0, day: int = 19) -> datetime:
    return datetime(2026, 10, day, hour, minute)


def request_for(entity, start: datetime, entity_type: str = "service", **overrides) -> ReservationRequest:
    values = dict(entity_id=entity.id, entity_type=entity_type, start_time=start, customer_id=100)
    values.update(overrides)
    return ReservationRequest(**values)


def bookings_in(read_session_factory) -> list[Bookings]:
    db = read_session_factory()
    try:
        return db.query(Bookings).order_by(Bookings.id).all()
    finally:
        db.close()


class TestReserve:

    def test_reserves_pending_booking(self, reservations, service, read_session_factory, events):
        result = reservations.reserve(request_for(service, at(10), notes="window seat"))

        assert isinstance(result, Reserved)
        booking = result.booking
        assert booking.id is not None
        assert booking.status == "pending"
        assert booking.service_id == service.id
        assert booking.offer_id is None
        assert booking.booking_type == "service"
        assert booking.start_time == at(10)
        assert booking.end_time == at(11)
        assert booking.store_id == service.store_id
        assert booking.created_by == "customer:100"

        [stored] = bookings_in(read_session_factory)
        assert stored.id == booking.id
        assert stored.notes == "window seat"

    def test_history_row_written(self, reservations, service, read_session_factory):
        booking = reservations.reserve(request_for(service, at(10))).booking

        db = read_session_factory()
        try:
            [entry] = db.query(BookingStatusHistory).filter_by(booking_id=booking.id).all()
        finally:
            db.close()
        assert entry.from_status is None
        assert entry.to_status == "pending"
        assert entry.actor == "customer:100"

    def test_auto_confirm(self, seed, store, reservations):
        service = seed(make_service(store, auto_confirm_bookings=True))

        booking = reservations.reserve(request_for(service, at(10))).booking

        assert booking.status == "confirmed"
        assert booking.auto_confirmed is True
        assert booking.confirmed_at is not None

    def test_offer_booking_draws_from_service(self, seed, service, reservations):
        offer = seed(make_offer(service))

        booking = reservations.reserve(request_for(offer, at(10), entity_type="offer")).booking

        assert booking.offer_id == offer.id
        assert booking.service_id == service.id
        assert booking.booking_type == "offer"

    def test_post_commit_effects(self, reservations, service, read_session_factory, events):
        booking = reservations.reserve(request_for(service, at(10))).booking

        assert booking.verification_code
        assert json.loads(booking.qr_payload)["booking_id"] == booking.id
        [stored] = bookings_in(read_session_factory)
        assert stored.verification_code == booking.verification_code

        [created] = events.of_type("booking_created")
        assert created["booking_id"] == booking.id
        assert created["initiated_by"]["user_id"] == 100

    def test_failing_side_effects_do_not_fail_booking(self, reservations, service, read_session_factory):
        def broken_emit(event_type, payload):
            raise RuntimeError("queue down")

        reservations.side_effects.emit = broken_emit

        result = reservations.reserve(request_for(service, at(10)))

        assert isinstance(result, Reserved)
        assert len(bookings_in(read_session_factory)) == 1


class TestCapacity:

    def test_full_slot_rejected_with_refresh_hint(self, seed, service, reservations, read_session_factory):
        seed(
            make_booking(service, at(10), at(11)),
            make_booking(service, at(10), at(11), customer_id=101),
        )

        result = reservations.reserve(request_for(service, at(10)))

        assert isinstance(result, ReservationRejected)
        assert isinstance(result.error, SlotUnavailable)
        assert result.kind is FailureKind.SLOT_UNAVAILABLE
        assert result.error.status_code == 409
        assert "refresh availability" in result.reason
        assert len(bookings_in(read_session_factory)) == 2

    def test_offer_booking_counts_against_service(self, seed, store, reservations):
        service = seed(make_service(store, max_concurrent_bookings=1))
        offer = seed(make_offer(service))

        first = reservations.reserve(request_for(offer, at(10), entity_type="offer"))
        second = reservations.reserve(request_for(service, at(10), customer_id=101))

        assert isinstance(first, Reserved)
        assert isinstance(second.error, SlotUnavailable)

    def test_cancelled_booking_releases_slot(self, seed, store, reservations):
        service = seed(make_service(store, max_concurrent_bookings=1))
        seed(make_booking(service, at(10), at(11), status="cancelled"))

        assert isinstance(reservations.reserve(request_for(service, at(10))), Reserved)

    def test_adjacent_slots_do_not_collide(self, seed, store, reservations):
        service = seed(make_service(store, max_concurrent_bookings=1))

        assert isinstance(reservations.reserve(request_for(service, at(10))), Reserved)
        assert isinstance(reservations.reserve(request_for(service, at(11))), Reserved)
        assert isinstance(reservations.reserve(request_for(service, at(9))), Reserved)


class TestValidation:

    def test_off_grid_start(self, reservations, service):
        result = reservations.reserve(request_for(service, at(10, 30)))

        assert isinstance(result.error, ValidationError)

    def test_seconds_rejected(self, reservations, service):
        result = reservations.reserve(request_for(service, datetime(2026, 10, 19, 10, 0, 15)))

        assert isinstance(result.error, ValidationError)

    def test_too_soon(self, reservations, seed, store, clock):
        service = seed(make_service(store, min_advance_booking=120))
        clock.now = at(8, 30)

        result = reservations.reserve(request_for(service, at(10)))

        assert isinstance(result.error, BusinessRuleViolation)
        assert result.reason == "Booking must be made between 2 hours and 7 days in advance"

    def test_too_far_ahead(self, reservations, service):
        result = reservations.reserve(request_for(service, at(10, day=27)))

        assert result.reason == "Booking must be made between 1 hours and 7 days in advance"

    def test_min_advance_boundary_accepted(self, reservations, seed, store, clock):
        service = seed(make_service(store, min_advance_booking=30))
        clock.now = at(9, 30)

        assert isinstance(reservations.reserve(request_for(service, at(10))), Reserved)

    def test_closed_day(self, reservations, service):
        result = reservations.reserve(request_for(service, at(10, day=25)))

        assert result.kind is FailureKind.BUSINESS_RULE
        assert result.reason.startswith("Store is closed on Sunday")

    def test_unknown_offer(self, reservations):
        result = reservations.reserve(
            ReservationRequest(entity_id=999, entity_type="offer", start_time=at(10), customer_id=1)
        )

        assert isinstance(result.error, NotFound)
        assert result.reason == "Offer not found"

    def test_customer_required(self, reservations, service):
        result = reservations.reserve(request_for(service, at(10), customer_id=None))

        assert result.kind is FailureKind.VALIDATION


class TestLocation:

    def test_branch_sets_store(self, seed, store, service, reservations):
        branch = seed(make_branch(store))

        booking = reservations.reserve(request_for(service, at(10), branch_id=branch.id)).booking

        assert booking.branch_id == branch.id
        assert booking.store_id == store.id

    def test_unknown_branch(self, reservations, service):
        result = reservations.reserve(request_for(service, at(10), branch_id=404))

        assert result.reason == "Branch not found"

    def test_store_of_another_merchant(self, seed, reservations, service):
        other = seed(make_store(merchant_id=2, name="Other"))

        result = reservations.reserve(request_for(service, at(10), store_id=other.id))

        assert isinstance(result.error, BusinessRuleViolation)

    def test_active_staff_assigned(self, seed, store, service, reservations):
        member = seed(make_staff(store))
        seed(make_assignment(member, service))

        booking = reservations.reserve(request_for(service, at(10), staff_id=member.id)).booking

        assert booking.staff_id == member.id

    def test_inactive_staff_rejected(self, seed, store, service, reservations):
        member = seed(make_staff(store, status="inactive"))

        result = reservations.reserve(request_for(service, at(10), staff_id=member.id))

        assert result.reason == "Staff member not found or not available at this location"

    def test_staff_not_assigned_to_service(self, seed, store, service, reservations):
        member = seed(make_staff(store))
        other = seed(make_service(store, name="Massage"))
        seed(make_assignment(member, other))

        result = reservations.reserve(request_for(service, at(10), staff_id=member.id))

        assert isinstance(result.error, BusinessRuleViolation)
        assert result.reason.startswith('Staff member "Alex" is not assigned to this service')

    def test_inactive_assignment_rejected(self, seed, store, service, reservations):
        member = seed(make_staff(store))
        seed(make_assignment(member, service, is_active=False))

        result = reservations.reserve(request_for(service, at(10), staff_id=member.id))

        assert isinstance(result.error, BusinessRuleViolation)
