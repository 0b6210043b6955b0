# backend/booking_engine/dependencies.py
"""
Wiring of the engine's collaborators for FastAPI.

Collaborators are passed explicitly; tests replace these providers through
app.dependency_overrides.
"""

from .config import settings
from .database import ReadSessionLocal, SessionLocal
from .redis_client import redis_client
from .services.lifecycle import BookingLifecycle
from .services.repositories import (
    BookingRepository,
    OfferRepository,
    ServiceRepository,
    SlotGuardRepository,
    StaffRepository,
    StoreRepository,
)
from .services.reservations import ReservationTransaction
from .services.side_effects import BookingSideEffects
from .services.slots import AvailabilityService, CapacityLedger, SlotsRedisStore


def build_availability_service() -> AvailabilityService:
    offers = OfferRepository()
    grid_cache = (
        SlotsRedisStore(redis_client, ttl_seconds=settings.slot_cache_ttl_seconds)
        if redis_client is not None
        else None
    )
    return AvailabilityService(
        stores=StoreRepository(),
        services=ServiceRepository(),
        offers=offers,
        ledger=CapacityLedger(BookingRepository(offers)),
        grid_cache=grid_cache,
    )


def build_reservation_transaction() -> ReservationTransaction:
    availability = build_availability_service()
    return ReservationTransaction(
        session_factory=SessionLocal,
        read_session_factory=ReadSessionLocal,
        availability=availability,
        bookings=BookingRepository(availability.offers),
        guards=SlotGuardRepository(),
        stores=StoreRepository(),
        staff=StaffRepository(),
        side_effects=BookingSideEffects(SessionLocal),
    )


def build_lifecycle() -> BookingLifecycle:
    return BookingLifecycle(SessionLocal, BookingRepository())


# Dependencies for FastAPI
def get_redis():
    return redis_client


def get_availability_service() -> AvailabilityService:
    return build_availability_service()


def get_reservations() -> ReservationTransaction:
    return build_reservation_transaction()


def get_lifecycle() -> BookingLifecycle:
    return build_lifecycle()
