# backend/booking_engine/services/lifecycle.py
"""
Booking lifecycle transitions.

    pending ──confirm──► confirmed ──check_in──► in_progress ──complete──► completed
       │                    │  │                     │
       └──────cancel────────┘  └──mark_no_show──► no_show
                            │                        │
                            └────────cancel──────────┘──► cancelled

completed, cancelled and no_show are terminal. Every transition locks the
booking row, stamps its timestamp and updated_by, writes a history row and
emits booking_status_changed after commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models import Bookings
from .errors import InfrastructureError, InvalidTransition, NotFound
from .events import emit_event
from .repositories import BookingRepository

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
})


class LifecycleAction(str, Enum):
    CONFIRM = "confirm"
    CHECK_IN = "check_in"
    COMPLETE = "complete"
    CANCEL = "cancel"
    NO_SHOW = "no_show"


class CompletionMethod(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    target: BookingStatus
    stamp: str  # Bookings column set to the transition time


TRANSITIONS: dict[LifecycleAction, Transition] = {
    LifecycleAction.CONFIRM: Transition(
        frozenset({BookingStatus.PENDING}), BookingStatus.CONFIRMED, "confirmed_at"
    ),
    LifecycleAction.CHECK_IN: Transition(
        frozenset({BookingStatus.CONFIRMED}), BookingStatus.IN_PROGRESS, "checked_in_at"
    ),
    LifecycleAction.COMPLETE: Transition(
        frozenset({BookingStatus.IN_PROGRESS}), BookingStatus.COMPLETED, "completed_at"
    ),
    LifecycleAction.CANCEL: Transition(
        frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}),
        BookingStatus.CANCELLED,
        "cancelled_at",
    ),
    LifecycleAction.NO_SHOW: Transition(
        frozenset({BookingStatus.CONFIRMED}), BookingStatus.NO_SHOW, "no_show_at"
    ),
}


class BookingLifecycle:

    def __init__(
        self,
        session_factory: sessionmaker,
        bookings: BookingRepository,
        emit: Callable[[str, dict], object] = emit_event,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        self.bookings = bookings
        self.emit = emit
        self.clock = clock

    def confirm(self, booking_id: int, actor: str, reason: str | None = None) -> Bookings:
        return self.transition(booking_id, LifecycleAction.CONFIRM, actor, reason)

    def check_in(self, booking_id: int, actor: str, reason: str | None = None) -> Bookings:
        return self.transition(booking_id, LifecycleAction.CHECK_IN, actor, reason)

    def complete(
        self,
        booking_id: int,
        actor: str,
        reason: str | None = None,
        method: CompletionMethod = CompletionMethod.MANUAL,
    ) -> Bookings:
        return self.transition(
            booking_id, LifecycleAction.COMPLETE, actor, reason, completion_method=method
        )

    def cancel(self, booking_id: int, actor: str, reason: str | None = None) -> Bookings:
        return self.transition(booking_id, LifecycleAction.CANCEL, actor, reason)

    def mark_no_show(self, booking_id: int, actor: str, reason: str | None = None) -> Bookings:
        return self.transition(booking_id, LifecycleAction.NO_SHOW, actor, reason)

    def transition(
        self,
        booking_id: int,
        action: LifecycleAction,
        actor: str,
        reason: str | None = None,
        completion_method: CompletionMethod | None = None,
    ) -> Bookings:
        """
        Apply one lifecycle action under a row lock.

        Raises:
            NotFound: booking missing
            InvalidTransition: action not allowed from the current status
            InfrastructureError: database failure
        """
        action = LifecycleAction(action)
        rule = TRANSITIONS[action]

        db = self.session_factory()
        try:
            booking = self.bookings.get(db, booking_id, for_update=True)
            if booking is None:
                raise NotFound("Booking not found")

            previous = booking.status
            if previous not in {status.value for status in rule.sources}:
                raise InvalidTransition(
                    f"Cannot {action.value.replace('_', ' ')} a booking that is {previous}"
                )

            now = self.clock()
            booking.status = rule.target.value
            setattr(booking, rule.stamp, now)
            booking.updated_by = actor
            booking.updated_at = now

            if action is LifecycleAction.CANCEL:
                booking.cancellation_reason = reason
            elif action is LifecycleAction.NO_SHOW:
                booking.no_show_reason = reason
            elif action is LifecycleAction.COMPLETE:
                booking.completion_method = (completion_method or CompletionMethod.MANUAL).value

            self.bookings.record_transition(
                db, booking, previous, booking.status, actor, now, reason=reason
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(f"Lifecycle transition {action.value} failed for booking {booking_id}")
            raise InfrastructureError() from exc
        finally:
            db.close()

        logger.info(f"Booking {booking_id}: {previous} → {booking.status} by {actor}")
        self.emit("booking_status_changed", {
            "booking_id": booking.id,
            "service_id": booking.service_id,
            "from_status": previous,
            "to_status": booking.status,
            "actor": actor,
            "reason": reason,
        })
        return booking
