# backend/booking_engine/services/side_effects.py
"""
Post-commit side effects of a reservation.

Runs after the booking row is committed and outside any lock:
1. Verification code + QR payload attached to the booking (own transaction)
2. booking_created event queued for the notification workers

Each step is best-effort and independently retryable. A failure is logged
and never rolls back or fails the booking.
"""

import json
import logging
import secrets
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from ..models import Bookings
from .events import emit_event

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    return secrets.token_hex(4).upper()


def build_qr_payload(booking: Bookings, code: str) -> str:
    """Payload encoded into the check-in QR code (rendering happens elsewhere)."""
    return json.dumps(
        {
            "booking_id": booking.id,
            "code": code,
            "service_id": booking.service_id,
            "start_time": booking.start_time.isoformat(),
        },
        separators=(",", ":"),
    )


class BookingSideEffects:

    def __init__(
        self,
        session_factory: sessionmaker,
        emit: Callable[[str, dict], object] = emit_event,
    ):
        self.session_factory = session_factory
        self.emit = emit

    def after_commit(self, booking: Bookings) -> None:
        for step in (self.attach_verification, self.announce):
            try:
                step(booking)
            except Exception:
                logger.exception(
                    f"Post-commit step {step.__name__} failed for booking {booking.id}"
                )

    def attach_verification(self, booking: Bookings) -> None:
        code = generate_verification_code()
        payload = build_qr_payload(booking, code)

        db: Session = self.session_factory()
        try:
            row = db.get(Bookings, booking.id)
            if row is None:
                return
            row.verification_code = code
            row.qr_payload = payload
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        booking.verification_code = code
        booking.qr_payload = payload

    def announce(self, booking: Bookings) -> None:
        self.emit("booking_created", {
            "booking_id": booking.id,
            "service_id": booking.service_id,
            "offer_id": booking.offer_id,
            "status": booking.status,
            "start_time": booking.start_time.isoformat(),
            "initiated_by": {
                "user_id": booking.customer_id,
                "role": "customer",
                "channel": booking.source_channel,
            },
        })
