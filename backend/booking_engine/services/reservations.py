# backend/booking_engine/services/reservations.py
"""
Reservation transaction: the write path of the booking engine.

Two customers asking for the same slot at the same time must not both win
when that would exceed the service's capacity. Sequence:

1. Validate (no locks, read session): entity, offer lifecycle, booking
   enabled, store calendar, grid alignment, advance window, branch/staff.
2. Open a primary transaction and lock:
   - the SlotGuard row of (service, slot start)  → same-slot attempts queue here
   - the active bookings of the pool overlapping the slot (SELECT ... FOR UPDATE)
3. Recount overlap (half-open) against max_concurrent_bookings.
   Full → roll back, SlotUnavailable. Never "assume available".
4. Insert booking (+ status history) and commit.
5. After commit, outside the lock: QR payload + booking_created event.
   Their failure is logged only.

The advisory check_slot pre-check never replaces step 2–3.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from math import ceil
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import Bookings
from .errors import (
    BookingEngineError,
    BusinessRuleViolation,
    InfrastructureError,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from .repositories import BookingRepository, SlotGuardRepository, StaffRepository, StoreRepository
from .results import ReservationRejected, ReservationResult, Reserved
from .side_effects import BookingSideEffects
from .slots.availability import AvailabilityService, EntityType, ResolvedEntity
from .slots.calculator import Slot, SlotGrid
from .slots.config import ServiceRules, minute_of_day

logger = logging.getLogger(__name__)


@dataclass
class ReservationRequest:
    entity_id: int
    entity_type: str
    start_time: datetime
    customer_id: int
    staff_id: int | None = None
    store_id: int | None = None
    branch_id: int | None = None
    notes: str | None = None
    actor: str | None = None
    source_channel: str = "web"


@dataclass(frozen=True)
class _Plan:
    """Everything validated before the lock is taken."""
    resolved: ResolvedEntity
    slot: Slot
    start: datetime
    end: datetime
    store_id: int
    branch_id: int | None
    staff_id: int | None


class ReservationTransaction:

    def __init__(
        self,
        session_factory: sessionmaker,
        availability: AvailabilityService,
        bookings: BookingRepository,
        guards: SlotGuardRepository,
        stores: StoreRepository,
        staff: StaffRepository,
        side_effects: BookingSideEffects | None = None,
        read_session_factory: sessionmaker | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.read_session_factory = read_session_factory or session_factory
        self.availability = availability
        self.bookings = bookings
        self.guards = guards
        self.stores = stores
        self.staff = staff
        self.side_effects = side_effects
        self.clock = clock or availability.clock

    def reserve(self, request: ReservationRequest) -> ReservationResult:
        """
        Reserve a slot.

        Returns:
            Reserved(booking) or ReservationRejected(error) for
            NotFound / BusinessRuleViolation / ValidationError / SlotUnavailable.

        Raises:
            InfrastructureError: database failure (nothing was committed)
        """
        try:
            plan = self._validate(request)
            booking = self._commit(request, plan)
        except InfrastructureError:
            raise
        except BookingEngineError as exc:
            logger.info(
                f"Reservation rejected ({exc.kind.value}): "
                f"{request.entity_type}={request.entity_id}, start={request.start_time}, "
                f"customer={request.customer_id}: {exc.detail}"
            )
            return ReservationRejected(error=exc)

        logger.info(
            f"Booking reserved: booking_id={booking.id}, service_id={booking.service_id}, "
            f"offer_id={booking.offer_id}, start={booking.start_time}, status={booking.status}"
        )

        if self.side_effects is not None:
            self.side_effects.after_commit(booking)

        return Reserved(booking=booking)

    # ── Step 1: validation, no locks ─────────────────────────────────────

    def _validate(self, request: ReservationRequest) -> _Plan:
        if not request.customer_id:
            raise ValidationError("Customer ID is required")

        start = _normalize_start(request.start_time)

        db = self.read_session_factory()
        try:
            resolved = self.availability.resolve_entity(db, request.entity_id, request.entity_type)
            rules = resolved.rules

            day = start.date()
            window = self.availability.opening_window(resolved.store, day)
            slot = SlotGrid.find(
                self.availability.base_slots(rules, day, window),
                minute_of_day(start),
            )
            if slot is None:
                raise ValidationError("Requested start time is not aligned to an available slot")

            self._check_advance_window(rules, start)

            store_id, branch_id = self._resolve_location(db, request, resolved)
            staff_id = self._resolve_staff(
                db, request.staff_id, resolved.service.id, store_id, branch_id
            )
        except SQLAlchemyError as exc:
            logger.exception("Reservation validation failed on database access")
            raise InfrastructureError() from exc
        finally:
            db.close()

        return _Plan(
            resolved=resolved,
            slot=slot,
            start=start,
            end=start + timedelta(minutes=rules.duration),
            store_id=store_id,
            branch_id=branch_id,
            staff_id=staff_id,
        )

    def _check_advance_window(self, rules: ServiceRules, start: datetime) -> None:
        advance_minutes = (start - self.clock()).total_seconds() / 60
        if rules.min_advance <= advance_minutes <= rules.max_advance:
            return

        min_hours = ceil(rules.min_advance / 60)
        max_days = ceil(rules.max_advance / (60 * 24))
        raise BusinessRuleViolation(
            f"Booking must be made between {min_hours} hours and {max_days} days in advance"
        )

    def _resolve_location(
        self,
        db: Session,
        request: ReservationRequest,
        resolved: ResolvedEntity,
    ) -> tuple[int, int | None]:
        service_store_id = resolved.store.id

        if request.branch_id is not None:
            branch = self.stores.get_branch(db, request.branch_id)
            if branch is None:
                raise NotFound("Branch not found")
            if branch.store_id != service_store_id:
                raise BusinessRuleViolation("This service is not offered at the selected branch")
            return branch.store_id, branch.id

        if request.store_id is not None:
            store = self.stores.get(db, request.store_id)
            if store is None:
                raise NotFound("Store not found")
            if store.id != service_store_id:
                raise BusinessRuleViolation("This service is not offered at the selected store")
            return store.id, resolved.service.branch_id

        return service_store_id, resolved.service.branch_id

    def _resolve_staff(
        self,
        db: Session,
        staff_id: int | None,
        service_id: int,
        store_id: int,
        branch_id: int | None,
    ) -> int | None:
        if staff_id is None:
            return None
        member = self.staff.get_active(db, staff_id, store_id=store_id, branch_id=branch_id)
        if member is None:
            raise NotFound("Staff member not found or not available at this location")
        if not self.staff.performs(db, member.id, service_id):
            raise BusinessRuleViolation(
                f'Staff member "{member.name}" is not assigned to this service. '
                "Please select a different staff member or contact the merchant."
            )
        return member.id

    # ── Steps 2–4: locked recheck and insert ─────────────────────────────

    def _commit(self, request: ReservationRequest, plan: _Plan) -> Bookings:
        rules = plan.resolved.rules
        service_id = plan.resolved.service.id

        db = self.session_factory()
        try:
            self.guards.acquire(db, service_id, plan.start)
            active = self.bookings.overlapping(db, service_id, plan.start, plan.end, for_update=True)

            if len(active) >= rules.max_concurrent:
                db.rollback()
                raise SlotUnavailable()

            now = self.clock()
            status = "confirmed" if rules.auto_confirm else "pending"
            actor = request.actor or f"customer:{request.customer_id}"
            offer = plan.resolved.offer

            booking = Bookings(
                service_id=service_id,
                offer_id=offer.id if offer is not None else None,
                customer_id=request.customer_id,
                staff_id=plan.staff_id,
                store_id=plan.store_id,
                branch_id=plan.branch_id,
                start_time=plan.start,
                end_time=plan.end,
                status=status,
                booking_type=EntityType.OFFER.value if offer is not None else EntityType.SERVICE.value,
                source_channel=request.source_channel,
                notes=request.notes or "",
                auto_confirmed=rules.auto_confirm,
                confirmed_at=now if rules.auto_confirm else None,
                created_by=actor,
                updated_by=actor,
                created_at=now,
                updated_at=now,
            )
            self.bookings.add(db, booking)
            self.bookings.record_transition(
                db,
                booking,
                from_status=None,
                to_status=status,
                actor=actor,
                at=now,
                reason="Auto-confirmed by service settings" if rules.auto_confirm else None,
            )
            db.commit()
            return booking
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(
                f"Reservation transaction failed for service={service_id} start={plan.start}"
            )
            raise InfrastructureError() from exc
        finally:
            db.close()


def _normalize_start(value) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError("Invalid start time. Expected YYYY-MM-DDTHH:MM:SS")
    if value.tzinfo is not None:
        # Single operational timezone: aware inputs are converted to local wall-clock
        value = value.astimezone().replace(tzinfo=None)
    if value.second or value.microsecond:
        raise ValidationError("Start time must be on a whole minute")
    return value
