# backend/booking_engine/services/slots/invalidator.py
"""
Cache invalidation for service slot grids.

Triggers (called by the merchant tools after a write):
✓ Store opening/closing time or working days changed → invalidate every service of the store
✓ Service duration/buffer changed → invalidate that service

Does NOT trigger:
✗ Booking created/cancelled (capacity is computed on every read)
"""

from datetime import date, timedelta
from redis import Redis
from sqlalchemy.orm import Session

from ...models import Services
from .redis_store import SlotsRedisStore


def invalidate_service_cache(
    redis: Redis,
    service_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached grids for a service.

    Returns:
        Number of deleted cache keys
    """
    store = SlotsRedisStore(redis)
    return store.delete_day_slots(service_id, dates)


def invalidate_store_cache(redis: Redis, db: Session, store_id: int) -> int:
    """Invalidate cached grids of every service of a store."""
    service_ids = [
        row.id for row in db.query(Services.id).filter(Services.store_id == store_id).all()
    ]
    return sum(invalidate_service_cache(redis, service_id) for service_id in service_ids)


def get_affected_dates(date_start: date, date_end: date) -> list[date]:
    """List of dates in [date_start, date_end], inclusive, in either order."""
    if date_start > date_end:
        date_start, date_end = date_end, date_start

    dates = []
    current = date_start
    while current <= date_end:
        dates.append(current)
        current += timedelta(days=1)

    return dates
