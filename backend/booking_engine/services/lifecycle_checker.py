"""
Booking lifecycle checker.

Periodically sweeps bookings whose time has passed:
- in_progress, checked_in_at + duration + buffer <= now, service has
  auto_complete_on_duration → completed (completion_method=automatic)
- confirmed, never checked in, start + grace period + duration <= now → no_show

Runs as an asyncio task in the application lifespan.
Uses synchronous DB (via asyncio.to_thread). Every transition runs in its own
transaction through BookingLifecycle, so a booking changed concurrently by a
merchant is skipped instead of overwritten.
Database failures abort the sweep and surface in the loop.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import sessionmaker

from .errors import InvalidTransition, NotFound
from .lifecycle import BookingLifecycle, BookingStatus, CompletionMethod
from .repositories import BookingRepository
from .results import SweepReport
from .slots.config import BookingDefaults, ServiceRules

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class LifecycleSweeper:

    def __init__(
        self,
        read_session_factory: sessionmaker,
        bookings: BookingRepository,
        lifecycle: BookingLifecycle,
        clock: Callable[[], datetime] = datetime.now,
        defaults: BookingDefaults | None = None,
    ):
        self.read_session_factory = read_session_factory
        self.bookings = bookings
        self.lifecycle = lifecycle
        self.clock = clock
        self.defaults = defaults

    def sweep(self) -> SweepReport:
        now = self.clock()
        report = SweepReport()

        to_complete, to_no_show = self._due(now)

        for booking_id in to_complete:
            self._apply(
                report.completed,
                report,
                booking_id,
                lambda: self.lifecycle.complete(
                    booking_id,
                    SYSTEM_ACTOR,
                    reason="Service duration elapsed",
                    method=CompletionMethod.AUTOMATIC,
                ),
            )

        for booking_id in to_no_show:
            self._apply(
                report.no_shows,
                report,
                booking_id,
                lambda: self.lifecycle.mark_no_show(
                    booking_id,
                    SYSTEM_ACTOR,
                    reason="Customer did not check in within the grace period",
                ),
            )

        if report.completed or report.no_shows:
            logger.info(
                f"Lifecycle sweep: completed={report.completed} "
                f"no_show={report.no_shows} skipped={report.skipped}"
            )
        return report

    def _due(self, now: datetime) -> tuple[list[int], list[int]]:
        """Ids of bookings due for automatic completion and for no-show."""
        to_complete: list[int] = []
        to_no_show: list[int] = []

        db = self.read_session_factory()
        try:
            in_progress = self.bookings.started_with_status(db, BookingStatus.IN_PROGRESS.value, now)
            for booking in in_progress:
                rules = ServiceRules.from_service(booking.service, self.defaults)
                if not rules.auto_complete:
                    continue
                started = booking.checked_in_at or booking.start_time
                length = booking.end_time - booking.start_time
                if started + length + timedelta(minutes=rules.buffer_time) <= now:
                    to_complete.append(booking.id)

            confirmed = self.bookings.started_with_status(db, BookingStatus.CONFIRMED.value, now)
            for booking in confirmed:
                if booking.checked_in_at is not None:
                    continue
                rules = ServiceRules.from_service(booking.service, self.defaults)
                length = booking.end_time - booking.start_time
                if booking.start_time + timedelta(minutes=rules.grace_period) + length <= now:
                    to_no_show.append(booking.id)
        finally:
            db.close()

        return to_complete, to_no_show

    @staticmethod
    def _apply(bucket: list[int], report: SweepReport, booking_id: int, step) -> None:
        try:
            step()
        except (NotFound, InvalidTransition) as exc:
            # Already moved on (merchant action in between) or vanished
            logger.info(f"Lifecycle sweep skipped booking {booking_id}: {exc.detail}")
            report.skipped.append(booking_id)
            return
        bucket.append(booking_id)


async def lifecycle_checker_loop(sweeper: LifecycleSweeper, interval: int) -> None:
    """Periodic loop running LifecycleSweeper.sweep every `interval` seconds."""
    logger.info("lifecycle_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(sweeper.sweep)
            except asyncio.CancelledError:
                logger.info("lifecycle_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("lifecycle_checker_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass
