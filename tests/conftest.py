"""Shared test fixtures and helpers."""

from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker

from booking_engine.database import create_primary_engine, create_read_engine, init_db
from booking_engine.models import Bookings, Branches, Offers, Services, Staff, StaffServices, Stores
from booking_engine.services.lifecycle import BookingLifecycle
from booking_engine.services.repositories import (
    BookingRepository,
    OfferRepository,
    ServiceRepository,
    SlotGuardRepository,
    StaffRepository,
    StoreRepository,
)
from booking_engine.services.reservations import ReservationTransaction
from booking_engine.services.side_effects import BookingSideEffects
from booking_engine.services.slots import AvailabilityService, CapacityLedger

# Sunday; the Monday after is the first open day of the week
NOW = datetime(2026, 10, 18, 12, 0)
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)

WEEKDAYS_JSON = '["monday", "tuesday", "wednesday", "thursday", "friday"]'


class FrozenClock:
    """Callable clock whose time tests can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class EventRecorder:
    """Stands in for emit_event; records (type, payload)."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event_type: str, payload: dict) -> bool:
        self.events.append((event_type, payload))
        return True

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for kind, payload in self.events if kind == event_type]


# ── Factories ────────────────────────────────────────────────────────────


def make_store(**overrides) -> Stores:
    values = dict(
        merchant_id=1,
        name="Glow Studio",
        opening_time="09:00",
        closing_time="17:00",
        working_days=WEEKDAYS_JSON,
        status="active",
        location="12 Market Street",
    )
    values.update(overrides)
    return Stores(**values)


def make_service(store: Stores, **overrides) -> Services:
    values = dict(
        store_id=store.id,
        name="Haircut",
        duration=60,
        buffer_time=0,
        max_concurrent_bookings=2,
        min_advance_booking=30,
        max_advance_booking=7 * 24 * 60,
        grace_period_minutes=10,
        booking_enabled=True,
        auto_confirm_bookings=False,
        auto_complete_on_duration=True,
    )
    values.update(overrides)
    return Services(**values)


def make_offer(service: Services, **overrides) -> Offers:
    values = dict(
        service_id=service.id,
        status="active",
        title="Autumn special",
        expiration_date=datetime(2026, 12, 31, 23, 59),
    )
    values.update(overrides)
    return Offers(**values)


def make_booking(service: Services, start: datetime, end: datetime, **overrides) -> Bookings:
    values = dict(
        service_id=service.id,
        customer_id=100,
        store_id=service.store_id,
        start_time=start,
        end_time=end,
        status="confirmed",
        booking_type="service",
        source_channel="web",
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return Bookings(**values)


def make_branch(store: Stores, **overrides) -> Branches:
    values = dict(store_id=store.id, name="Downtown", status="active")
    values.update(overrides)
    return Branches(**values)


def make_staff(store: Stores, **overrides) -> Staff:
    values = dict(store_id=store.id, name="Alex", status="active")
    values.update(overrides)
    return Staff(**values)


def make_assignment(member: Staff, service: Services, **overrides) -> StaffServices:
    values = dict(staff_id=member.id, service_id=service.id, is_active=True)
    values.update(overrides)
    return StaffServices(**values)


# ── Database ─────────────────────────────────────────────────────────────


@pytest.fixture
def engines(tmp_path):
    url = f"sqlite:///{tmp_path / 'booking.db'}"
    primary = create_primary_engine(url, lock_timeout_ms=30000)
    read = create_read_engine(url)
    init_db(primary)
    yield primary, read
    primary.dispose()
    read.dispose()


@pytest.fixture
def session_factory(engines):
    return sessionmaker(bind=engines[0], autoflush=False, expire_on_commit=False)


@pytest.fixture
def read_session_factory(engines):
    return sessionmaker(bind=engines[1], autoflush=False, expire_on_commit=False)


@pytest.fixture
def seed(session_factory):
    """Persist objects in their own committed transaction and return the first."""

    def _seed(*objects):
        db = session_factory()
        try:
            db.add_all(objects)
            db.commit()
        finally:
            db.close()
        return objects[0]

    return _seed


@pytest.fixture
def read_db(read_session_factory):
    db = read_session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(seed):
    return seed(make_store())


@pytest.fixture
def service(seed, store):
    return seed(make_service(store))


# ── Engine components ────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def events():
    return EventRecorder()


@pytest.fixture
def availability(clock):
    offers = OfferRepository()
    return AvailabilityService(
        stores=StoreRepository(),
        services=ServiceRepository(),
        offers=offers,
        ledger=CapacityLedger(BookingRepository(offers)),
        clock=clock,
    )


@pytest.fixture
def side_effects(session_factory, events):
    return BookingSideEffects(session_factory, emit=events)


@pytest.fixture
def reservations(session_factory, read_session_factory, availability, side_effects, clock):
    return ReservationTransaction(
        session_factory=session_factory,
        read_session_factory=read_session_factory,
        availability=availability,
        bookings=BookingRepository(),
        guards=SlotGuardRepository(),
        stores=StoreRepository(),
        staff=StaffRepository(),
        side_effects=side_effects,
        clock=clock,
    )


@pytest.fixture
def lifecycle(session_factory, events, clock):
    return BookingLifecycle(session_factory, BookingRepository(), emit=events, clock=clock)
