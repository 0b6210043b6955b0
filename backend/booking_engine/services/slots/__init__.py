# backend/booking_engine/services/slots/__init__.py
"""
Slots calculation module.

OperatingCalendar → SlotGrid → CapacityLedger, orchestrated by AvailabilityService.
Base grids may be cached in Redis Sorted Sets; capacity is always computed fresh.
"""

from .config import BookingDefaults, ServiceRules, get_booking_defaults
from .calendar import OperatingCalendar, OperatingWindow, OpeningDecision, normalize_working_days
from .calculator import Slot, SlotGrid
from .ledger import CapacityLedger, Occupancy, SlotCapacity
from .redis_store import SlotsRedisStore
from .invalidator import get_affected_dates, invalidate_service_cache, invalidate_store_cache
from .availability import AvailabilityService, EntityType, ResolvedEntity, parse_booking_date

__all__ = [
    "BookingDefaults",
    "ServiceRules",
    "get_booking_defaults",
    "OperatingCalendar",
    "OperatingWindow",
    "OpeningDecision",
    "normalize_working_days",
    "Slot",
    "SlotGrid",
    "CapacityLedger",
    "Occupancy",
    "SlotCapacity",
    "SlotsRedisStore",
    "get_affected_dates",
    "invalidate_service_cache",
    "invalidate_store_cache",
    "AvailabilityService",
    "EntityType",
    "ResolvedEntity",
    "parse_booking_date",
]
