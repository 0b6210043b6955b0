# backend/booking_engine/services/slots/redis_store.py
"""
Redis storage for generated slot grids using Sorted Sets.

Key format: slots:grid:{service_id}:{date}
Value: Sorted Set where member = "{start}-{end}" (minutes since midnight),
       score = start minute, so ZRANGE returns grid order.

Only the base grid is cached. Capacity is never cached: it is recomputed
from bookings on every read.
Sentinel: "__empty__" with score=-1 marks "calculated, zero slots".
"""

from datetime import date, datetime, timedelta
from redis import Redis

from .calculator import Slot


EMPTY_SENTINEL = "__empty__"


def _decode(member) -> str:
    return member.decode() if isinstance(member, bytes) else member


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot grids."""

    KEY_PREFIX = "slots:grid"

    def __init__(self, redis: Redis, ttl_seconds: int = 86400):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _key(self, service_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{service_id}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(self, service_id: int, dt: date, slots: list[Slot]) -> None:
        """
        Store the generated grid for a day.

        The key lives until the end of the day (plus a minute), capped by the TTL.
        Empty list → sentinel is stored.
        """
        key = self._key(service_id, dt)
        pipe = self.redis.pipeline()

        # Remove old data
        pipe.delete(key)

        if slots:
            pipe.zadd(key, {f"{slot.start}-{slot.end}": slot.start for slot in slots})
        else:
            # Empty day: sentinel so EXISTS returns True
            pipe.zadd(key, {EMPTY_SENTINEL: -1})

        end_of_day = datetime.combine(dt + timedelta(days=1), datetime.min.time())
        expire_at = min(
            int(end_of_day.timestamp()) + 60,
            int(datetime.now().timestamp()) + self.ttl_seconds,
        )
        pipe.expireat(key, expire_at)
        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_day_slots(self, service_id: int, dt: date) -> list[Slot] | None:
        """
        Returns:
            Slots in grid order, or None on cache miss.
        """
        key = self._key(service_id, dt)
        if not self.redis.exists(key):
            return None

        slots = []
        for member in self.redis.zrange(key, 0, -1):
            value = _decode(member)
            if value == EMPTY_SENTINEL:
                continue
            start, end = value.split("-")
            slots.append(Slot(start=int(start), end=int(end)))
        return slots

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_slots(self, service_id: int, dates: list[date] | None = None) -> int:
        """
        Delete cached grids.

        Args:
            service_id: Service ID
            dates: Specific dates, or None to delete all for the service.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(service_id, dt) for dt in dates]
        else:
            keys = list(self.redis.scan_iter(match=f"{self.KEY_PREFIX}:{service_id}:*"))

        if not keys:
            return 0

        return self.redis.delete(*keys)
