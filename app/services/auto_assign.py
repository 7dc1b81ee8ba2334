"""
Automatic provider assignment for bookings nobody picked up.

Runs as a timer-driven task (see run_auto_assignment_loop, started from the
application lifespan) and can be triggered by an admin. Each run:

    PENDING older than the threshold -> ASSIGNED to the best rated match
                                     -> WAITING when nobody matches
    WAITING (retry enabled)          -> ASSIGNED when a match appeared
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.core.config import (
    AUTO_ASSIGN_RETRY_WAITING,
    AUTO_ASSIGN_THRESHOLD_SECONDS,
)
from app.core.exceptions import ConcurrentUpdateError, InvalidTransitionError
from app.db.base import SessionLocal, utcnow
from app.db.models.booking import Booking, BookingStatus
from app.db.models.notification import NotificationType
from app.services.booking_state import get_booking, update_status
from app.services.effects import InAppNotice, Outcome
from app.services.matching import best_candidate
from app.services.notifications import get_dispatcher

logger = logging.getLogger(__name__)


def _sweep_one(db: Session, booking_id: str, summary: dict) -> Outcome:
    booking = get_booking(db, booking_id)
    service = booking.service
    # a deleted service leaves nothing to match against
    provider = best_candidate(db, service.name, booking.area) if service else None

    if provider:
        outcome = update_status(db, booking.id, BookingStatus.ASSIGNED, provider.id)
        outcome.effects.append(
            InAppNotice(provider.user_id, f"Auto-assigned new job: {service.name}", NotificationType.INFO.value)
        )
        outcome.effects.append(
            InAppNotice(booking.customer_id, "Provider auto-assigned to your booking!", NotificationType.SUCCESS.value)
        )
        summary["assigned"] += 1
        logger.info(f"Booking {booking_id} auto-assigned to provider {provider.id}")
        return outcome

    if booking.status == BookingStatus.PENDING.value:
        outcome = update_status(db, booking.id, BookingStatus.WAITING)
        summary["waiting"] += 1
        logger.info(f"Booking {booking_id} has no eligible provider, now WAITING")
        return outcome

    return Outcome(booking)


def sweep_stale_bookings(
    db: Session,
    now: Optional[datetime] = None,
    threshold_seconds: float = AUTO_ASSIGN_THRESHOLD_SECONDS,
    retry_waiting: bool = AUTO_ASSIGN_RETRY_WAITING,
) -> Outcome:
    """
    One pass over unassigned bookings.

    Returns an Outcome whose result is a summary dict and whose effects are
    the notifications for every booking that changed. A failure on one
    booking is logged and does not stop the others.
    """
    now = now or utcnow()
    cutoff = now - timedelta(seconds=threshold_seconds)

    criteria = [and_(Booking.status == BookingStatus.PENDING.value, Booking.created_at < cutoff)]
    if retry_waiting:
        criteria.append(Booking.status == BookingStatus.WAITING.value)

    booking_ids = [
        row.id for row in db.query(Booking.id).filter(or_(*criteria)).order_by(Booking.created_at).all()
    ]

    summary = {"scanned": len(booking_ids), "assigned": 0, "waiting": 0, "skipped": 0, "failed": 0}
    outcome = Outcome(summary)

    for booking_id in booking_ids:
        try:
            outcome.extend(_sweep_one(db, booking_id, summary).effects)
        except (ConcurrentUpdateError, InvalidTransitionError) as e:
            # someone else moved the booking since we selected it
            summary["skipped"] += 1
            logger.info(f"Skipping booking {booking_id} during sweep: {e.message}")
        except Exception as e:
            db.rollback()
            summary["failed"] += 1
            logger.error(f"Auto-assignment failed for booking {booking_id}: {e}")

    if booking_ids:
        logger.info(f"Auto-assignment sweep complete: {summary}")
    return outcome


def run_sweep_once(session_factory=SessionLocal, dispatcher=None) -> dict:
    dispatcher = dispatcher or get_dispatcher()
    db = session_factory()
    try:
        outcome = sweep_stale_bookings(db)
        dispatcher.dispatch(db, outcome.effects)
        return outcome.result
    finally:
        db.close()


async def run_auto_assignment_loop(interval_seconds: float, session_factory=SessionLocal, dispatcher=None):
    logger.info(f"Auto-assignment loop started (every {interval_seconds}s)")
    while True:
        try:
            await asyncio.to_thread(run_sweep_once, session_factory, dispatcher)
        except Exception as e:
            # next tick is the retry
            logger.error(f"❌ Auto-assignment sweep failed: {e}")
        await asyncio.sleep(interval_seconds)
