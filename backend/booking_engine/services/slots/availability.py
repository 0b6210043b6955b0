# backend/booking_engine/services/slots/availability.py
"""
Service availability calculation.

Answers the two read-side questions of the booking flow:
- list_slots: open slots of a service (or an offer of it) on a date
- check_slot: is one slot still open right now?

Both are side-effect-free and take no locks; they may run on a read replica.
check_slot is advisory: the reservation transaction rechecks under lock.

Takes into account:
- Store operating calendar (working days, opening window, past dates)
- Service rules (duration, buffer, capacity, booking enabled)
- Offer lifecycle (status, expiration) when booking through an offer
- Existing bookings of the whole service pool (CapacityLedger)
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Offers, Services, Stores
from ..errors import (
    BusinessRuleViolation,
    FailureKind,
    InfrastructureError,
    NotFound,
    ValidationError,
)
from ..repositories import OfferRepository, ServiceRepository, StoreRepository
from ..results import (
    BookingRules,
    SlotCheckResult,
    SlotClosed,
    SlotOpen,
    SlotsAvailable,
    SlotsResult,
    SlotsUnavailable,
    SlotView,
    StoreInfo,
)
from .calculator import Slot, SlotGrid
from .calendar import OperatingCalendar, OperatingWindow, format_working_days
from .config import (
    BookingDefaults,
    ServiceRules,
    format_display_time,
    parse_time_of_day,
    time_str_to_minutes,
)
from .ledger import CapacityLedger
from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class EntityType(str, Enum):
    SERVICE = "service"
    OFFER = "offer"


@dataclass(frozen=True)
class ResolvedEntity:
    """A bookable entity reduced to the service whose capacity it draws from."""
    service: Services
    store: Stores
    rules: ServiceRules
    offer: Offers | None = None


def parse_booking_date(value) -> date:
    """Accept a date or a strict "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not DATE_RE.match(str(value)):
        raise ValidationError("Invalid date format. Expected YYYY-MM-DD")
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date format. Expected YYYY-MM-DD")


class AvailabilityService:

    def __init__(
        self,
        stores: StoreRepository,
        services: ServiceRepository,
        offers: OfferRepository,
        ledger: CapacityLedger,
        calendar: OperatingCalendar | None = None,
        grid: SlotGrid | None = None,
        grid_cache: SlotsRedisStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
        defaults: BookingDefaults | None = None,
    ):
        self.stores = stores
        self.services = services
        self.offers = offers
        self.ledger = ledger
        self.clock = clock
        self.calendar = calendar or OperatingCalendar(clock)
        self.grid = grid or SlotGrid()
        self.grid_cache = grid_cache
        self.defaults = defaults

    # ── Queries ──────────────────────────────────────────────────────────

    def list_slots(self, db: Session, entity_id: int, entity_type, target_date) -> SlotsResult:
        """
        Open slots of a service or offer on a date.

        Failures come back as SlotsUnavailable with a specific reason
        (store closed / booking disabled / invalid date / not found).
        """
        store_info = None
        try:
            day = parse_booking_date(target_date)
            resolved = self.resolve_entity(db, entity_id, entity_type)
            store_info = self.store_info(resolved.store)

            window = self.opening_window(resolved.store, day)
            slots = self.base_slots(resolved.rules, day, window)
            occupancy = self.ledger.occupancy(db, resolved.service.id, day)
        except (NotFound, BusinessRuleViolation, ValidationError) as exc:
            return SlotsUnavailable.from_error(exc, store_info=store_info)
        except SQLAlchemyError as exc:
            logger.exception(f"list_slots failed for {entity_type}={entity_id} date={target_date}")
            raise InfrastructureError() from exc

        capacities = self.ledger.capacity_for(slots, occupancy, day, resolved.rules.max_concurrent)
        views = tuple(
            SlotView(
                start=cap.slot.start_str,
                end=cap.slot.end_str,
                time=cap.slot.display,
                available=cap.available,
                total=cap.total,
                booked=cap.booked,
            )
            for cap in capacities
            if cap.available > 0
        )

        return SlotsAvailable(
            service_id=resolved.service.id,
            date=day,
            slots=views,
            booking_rules=self.booking_rules(resolved.rules),
            store_info=store_info,
        )

    def check_slot(
        self,
        db: Session,
        entity_id: int,
        entity_type,
        target_date,
        time_value,
    ) -> SlotCheckResult:
        """
        Fast pre-check for one slot. Advisory only.

        `time_value` may be "HH:MM" (24h) or "h:mm AM/PM".
        """
        try:
            day = parse_booking_date(target_date)
            try:
                minute = parse_time_of_day(time_value)
            except ValueError:
                raise ValidationError("Invalid time format. Expected HH:MM or h:mm AM/PM")

            resolved = self.resolve_entity(db, entity_id, entity_type)
            window = self.opening_window(resolved.store, day)
            slot = SlotGrid.find(self.base_slots(resolved.rules, day, window), minute)
            if slot is None:
                raise BusinessRuleViolation("Requested time slot is not available")

            occupancy = self.ledger.occupancy(db, resolved.service.id, day)
        except (NotFound, BusinessRuleViolation, ValidationError) as exc:
            return SlotClosed(kind=exc.kind, reason=exc.detail)
        except SQLAlchemyError as exc:
            logger.exception(f"check_slot failed for {entity_type}={entity_id} date={target_date}")
            raise InfrastructureError() from exc

        capacity = self.ledger.capacity_for([slot], occupancy, day, resolved.rules.max_concurrent)[0]
        if capacity.available > 0:
            return SlotOpen(remaining=capacity.available, total=capacity.total)

        return SlotClosed(kind=FailureKind.SLOT_UNAVAILABLE, reason="Time slot is fully booked")

    # ── Building blocks (shared with the reservation path) ───────────────

    def resolve_entity(self, db: Session, entity_id: int, entity_type) -> ResolvedEntity:
        """
        Resolve a service or offer to its service, store and rules.

        Raises:
            ValidationError: unknown entity type
            NotFound: service, offer or store missing
            BusinessRuleViolation: offer inactive/expired, booking disabled
        """
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            raise ValidationError(f"Unknown entity type: {entity_type}")

        offer = None
        if entity_type is EntityType.OFFER:
            offer = self.offers.get(db, entity_id)
            if offer is None:
                raise NotFound("Offer not found")
            if offer.status != "active":
                raise BusinessRuleViolation("This offer is no longer active")
            if offer.expiration_date and offer.expiration_date < self.clock():
                raise BusinessRuleViolation("This offer has expired")
            service = self.services.get(db, offer.service_id)
            if service is None:
                raise NotFound("Associated service not found")
        else:
            service = self.services.get(db, entity_id)
            if service is None:
                raise NotFound("Service not found")

        rules = ServiceRules.from_service(service, self.defaults)
        if not rules.booking_enabled:
            raise BusinessRuleViolation("Online booking is not enabled for this service")

        store = self.stores.get(db, service.store_id)
        if store is None:
            raise NotFound("Store not found")

        return ResolvedEntity(service=service, store=store, rules=rules, offer=offer)

    def opening_window(self, store: Stores, day: date) -> OperatingWindow:
        decision = self.calendar.is_open(store, day)
        if not decision.open:
            raise BusinessRuleViolation(decision.reason)
        return decision.window

    def base_slots(self, rules: ServiceRules, day: date, window: OperatingWindow) -> list[Slot]:
        """Slot grid for the day, from the Redis cache when available."""
        if self.grid_cache is None:
            return self.grid.generate(rules, window)

        try:
            cached = self.grid_cache.get_day_slots(rules.service_id, day)
        except RedisError:
            logger.warning(f"Slot grid cache read failed for service={rules.service_id} date={day}")
            return self.grid.generate(rules, window)

        if cached is not None:
            return cached

        # Cache miss: calculate and store
        slots = self.grid.generate(rules, window)
        try:
            self.grid_cache.store_day_slots(rules.service_id, day, slots)
        except RedisError:
            logger.warning(f"Slot grid cache write failed for service={rules.service_id} date={day}")
        return slots

    @staticmethod
    def booking_rules(rules: ServiceRules) -> BookingRules:
        return BookingRules(
            max_concurrent_bookings=rules.max_concurrent,
            service_duration=rules.duration,
            buffer_time=rules.buffer_time,
            min_advance_booking=rules.min_advance,
            max_advance_booking=rules.max_advance,
        )

    def store_info(self, store: Stores) -> StoreInfo:
        return StoreInfo(
            name=store.name,
            location=store.location,
            opening_time=_display_or_raw(store.opening_time),
            closing_time=_display_or_raw(store.closing_time),
            working_days=tuple(format_working_days(self.calendar.working_days(store))),
        )


def _display_or_raw(value: str | None) -> str:
    try:
        return format_display_time(time_str_to_minutes(value))
    except (TypeError, ValueError):
        return value or ""
