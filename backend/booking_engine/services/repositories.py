# backend/booking_engine/services/repositories.py
"""
Data access for the engine.

Repositories are stateless; every method takes the Session it runs in, so
the same repository serves lock-free replica reads and locked writes on the
primary.
"""

from datetime import date, datetime, timedelta

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..models import (
    BookingStatusHistory,
    Bookings,
    Branches,
    Offers,
    Services,
    SlotGuards,
    Staff,
    StaffServices,
    Stores,
)

# Statuses that no longer hold capacity
RELEASED_STATUSES = ("cancelled", "no_show")


class StoreRepository:

    def get(self, db: Session, store_id: int) -> Stores | None:
        return db.get(Stores, store_id)

    def get_branch(self, db: Session, branch_id: int) -> Branches | None:
        return db.get(Branches, branch_id)


class StaffRepository:

    def get_active(
        self,
        db: Session,
        staff_id: int,
        store_id: int | None = None,
        branch_id: int | None = None,
    ) -> Staff | None:
        """Active staff member, scoped to the branch when given, else the store."""
        query = db.query(Staff).filter(Staff.id == staff_id, Staff.status == "active")
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)
        elif store_id is not None:
            query = query.filter(Staff.store_id == store_id)
        return query.first()

    def performs(self, db: Session, staff_id: int, service_id: int) -> bool:
        return (
            db.query(StaffServices.id)
            .filter(
                StaffServices.staff_id == staff_id,
                StaffServices.service_id == service_id,
                StaffServices.is_active.is_(True),
            )
            .first()
        ) is not None


class ServiceRepository:

    def get(self, db: Session, service_id: int) -> Services | None:
        return db.get(Services, service_id)


class OfferRepository:

    def get(self, db: Session, offer_id: int) -> Offers | None:
        return db.get(Offers, offer_id)

    def ids_for_service(self, service_id: int):
        """Subquery of offer ids drawing from the service's capacity pool."""
        return select(Offers.id).where(Offers.service_id == service_id)


class BookingRepository:

    def __init__(self, offers: OfferRepository | None = None):
        self.offers = offers or OfferRepository()

    def get(
        self,
        db: Session,
        booking_id: int,
        for_update: bool = False,
        with_history: bool = False,
    ) -> Bookings | None:
        query = db.query(Bookings).filter(Bookings.id == booking_id)
        if with_history:
            query = query.options(selectinload(Bookings.status_history))
        if for_update:
            query = query.with_for_update()
        return query.first()

    def overlapping(
        self,
        db: Session,
        service_id: int,
        start: datetime,
        end: datetime,
        for_update: bool = False,
    ) -> list[Bookings]:
        """
        Active bookings of the service pool overlapping [start, end).

        The pool is direct service bookings plus bookings made through any
        offer of the service. Overlap is half-open: a booking ending exactly
        at `start` does not count.
        """
        query = (
            db.query(Bookings)
            .filter(
                or_(
                    Bookings.service_id == service_id,
                    Bookings.offer_id.in_(self.offers.ids_for_service(service_id)),
                ),
                Bookings.status.notin_(RELEASED_STATUSES),
                Bookings.start_time < end,
                Bookings.end_time > start,
            )
            .order_by(Bookings.start_time, Bookings.id)
        )
        if for_update:
            query = query.with_for_update()
        return query.all()

    def for_day(self, db: Session, service_id: int, target_date: date) -> list[Bookings]:
        """Active bookings of the service pool touching target_date."""
        day_start = datetime.combine(target_date, datetime.min.time())
        return self.overlapping(db, service_id, day_start, day_start + timedelta(days=1))

    def started_with_status(self, db: Session, status: str, now: datetime) -> list[Bookings]:
        """Bookings in `status` whose start time has passed, with their service loaded."""
        return (
            db.query(Bookings)
            .options(selectinload(Bookings.service))
            .filter(Bookings.status == status, Bookings.start_time <= now)
            .order_by(Bookings.start_time, Bookings.id)
            .all()
        )

    def add(self, db: Session, booking: Bookings) -> Bookings:
        db.add(booking)
        db.flush()
        return booking

    def record_transition(
        self,
        db: Session,
        booking: Bookings,
        from_status: str | None,
        to_status: str,
        actor: str,
        at: datetime,
        reason: str | None = None,
    ) -> BookingStatusHistory:
        entry = BookingStatusHistory(
            booking_id=booking.id,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            reason=reason,
            created_at=at,
        )
        db.add(entry)
        return entry


class SlotGuardRepository:
    """
    Row locks scoped to (service, slot start).

    Concurrent reservations for the same slot queue on the same guard row;
    reservations for other slots of the service lock other rows.
    """

    def acquire(self, db: Session, service_id: int, slot_start: datetime) -> SlotGuards:
        guard = self._locked(db, service_id, slot_start)
        if guard is not None:
            return guard

        # First reservation of this slot ever: create the guard. A concurrent
        # creator makes our insert fail, and we then wait on its row instead.
        try:
            with db.begin_nested():
                db.add(SlotGuards(service_id=service_id, slot_start=slot_start))
        except IntegrityError:
            pass

        return self._locked(db, service_id, slot_start)

    def _locked(self, db: Session, service_id: int, slot_start: datetime) -> SlotGuards | None:
        return (
            db.query(SlotGuards)
            .filter(
                SlotGuards.service_id == service_id,
                SlotGuards.slot_start == slot_start,
            )
            .with_for_update()
            .first()
        )
