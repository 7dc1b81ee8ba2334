"""
Booking lifecycle.

Every operation takes a Session, applies its write, and returns an Outcome
carrying the updated booking plus the notifications/e-mails/pushes the
change calls for. Dispatching those is the caller's job.

Status writes go through a compare-and-swap on Booking.version so two
concurrent writers cannot silently overwrite each other; the rating write is
conditional on the booking not being rated yet.
"""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AlreadyRatedError,
    BookingError,
    BookingValidationError,
    ConcurrentUpdateError,
    InvalidTransitionError,
    NotFoundError,
)
from app.db.base import utcnow
from app.db.models.booking import Booking, BookingStatus
from app.db.models.notification import NotificationType
from app.db.models.provider import Provider
from app.db.models.service import Service
from app.db.models.user import User
from app.services.effects import AssignmentEmail, Effect, InAppNotice, Outcome, PushMessage
from app.services.pin import pin_matches
from app.services.rating import recalculate_provider_rating

logger = logging.getLogger(__name__)

TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.ASSIGNED, BookingStatus.WAITING, BookingStatus.CANCELLED},
    BookingStatus.WAITING: {BookingStatus.ASSIGNED, BookingStatus.CANCELLED},
    # ASSIGNED -> ASSIGNED is a re-assignment to another (or the same) provider
    BookingStatus.ASSIGNED: {BookingStatus.ASSIGNED, BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in TRANSITIONS[current]


def _parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise BookingValidationError(f"Unknown booking status: {value}")


def _format_amount(amount: float) -> str:
    # 500.0 -> "500", 499.5 -> "499.5", other floats keep every significant digit
    if float(amount).is_integer() and abs(amount) < 1e21:
        return str(int(amount))
    return repr(float(amount))


def get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def _assignment_effects(booking: Booking, provider: Provider, heading: str, body: str) -> List[Effect]:
    """E-mail (and push, if subscribed) telling a provider about a job."""
    provider_user = provider.user
    customer = booking.customer
    service = booking.service
    if not (provider_user and customer and service):
        logger.warning(f"Skipping provider alert for booking {booking.id}: user or service details missing")
        return []

    effects: List[Effect] = [
        AssignmentEmail(
            to_name=provider_user.name,
            to_email=provider_user.email,
            customer_name=customer.name,
            customer_phone=customer.phone or "",
            service_name=service.name,
            booking_date=booking.date,
            booking_time=booking.time,
            booking_location=f"{booking.address}, {booking.area}",
            amount=_format_amount(booking.amount),
        )
    ]
    if provider.push_subscription_id:
        effects.append(PushMessage(subscription_id=provider.push_subscription_id, heading=heading, body=body))
    return effects


def create_booking(
    db: Session,
    customer_id: str,
    service_id: str,
    *,
    address: str,
    area: str,
    date: str,
    time: str,
    description: Optional[str] = None,
    provider_id: Optional[str] = None,
) -> Outcome:
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise NotFoundError("Service", service_id)

    customer = db.query(User).filter(User.id == customer_id).first()
    if not customer:
        raise NotFoundError("Customer", customer_id)

    provider = None
    if provider_id:
        provider = db.query(Provider).filter(Provider.id == provider_id).first()
        if not provider:
            raise NotFoundError("Provider", provider_id)

    booking = Booking(
        customer_id=customer_id,
        service_id=service_id,
        provider_id=provider_id or None,
        description=description,
        address=address,
        area=area,
        date=date,
        time=time,
        amount=service.base_price,
        status=(BookingStatus.ASSIGNED if provider else BookingStatus.PENDING).value,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info(f"Booking {booking.id} created for {service.name} ({booking.status})")

    outcome = Outcome(booking)
    outcome.effects.append(
        InAppNotice(customer_id, "Booking created! Share PIN with provider when done.", NotificationType.SUCCESS.value)
    )
    if provider:
        outcome.effects.append(InAppNotice(provider.user_id, "New Booking Assigned!", NotificationType.INFO.value))
        outcome.extend(
            _assignment_effects(
                booking,
                provider,
                heading="New Booking Assigned! 🚀",
                body=f"New {service.name} job in {booking.area} for ₹{_format_amount(booking.amount)}",
            )
        )
    return outcome


def _status_effects(booking: Booking, status: BookingStatus) -> List[Effect]:
    effects: List[Effect] = []
    if status == BookingStatus.COMPLETED:
        effects.append(
            InAppNotice(booking.customer_id, "Service completed. Please rate!", NotificationType.SUCCESS.value)
        )
    elif status == BookingStatus.ASSIGNED:
        effects.append(InAppNotice(booking.customer_id, "Provider assigned.", NotificationType.INFO.value))
        if booking.provider:
            service_name = booking.service.name if booking.service else "Service"
            effects.extend(
                _assignment_effects(
                    booking,
                    booking.provider,
                    heading="New Job Assigned! 🚀",
                    body=f"{service_name} job at {booking.area}. Click to view details.",
                )
            )
    return effects


def update_status(db: Session, booking_id: str, new_status, provider_id: Optional[str] = None) -> Outcome:
    """
    Move a booking to `new_status`, optionally (re)assigning a provider.

    Raises InvalidTransitionError for moves the lifecycle does not allow and
    ConcurrentUpdateError when the booking changed between read and write.
    """
    status = _parse_status(new_status)
    booking = get_booking(db, booking_id)
    current = _parse_status(booking.status)

    if not can_transition(current, status):
        raise InvalidTransitionError(current.value, status.value)

    if provider_id and status != BookingStatus.ASSIGNED:
        raise BookingValidationError("A provider can only be set when assigning")

    if status == BookingStatus.ASSIGNED:
        if provider_id:
            exists = db.query(Provider.id).filter(Provider.id == provider_id).first()
            if not exists:
                raise NotFoundError("Provider", provider_id)
        elif not booking.provider_id:
            raise BookingValidationError("Assigning a booking requires a provider")

    values = {"status": status.value, "version": booking.version + 1, "updated_at": utcnow()}
    if provider_id:
        values["provider_id"] = provider_id

    result = db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.version == booking.version)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConcurrentUpdateError(booking_id)
    db.commit()

    # commit expired the instance, this re-reads status, provider and relations
    db.refresh(booking)
    logger.info(f"Booking {booking_id}: {current.value} -> {status.value}")
    return Outcome(booking, _status_effects(booking, status))


def cancel_booking(db: Session, booking_id: str) -> Outcome:
    return update_status(db, booking_id, BookingStatus.CANCELLED)


def verify_and_complete(db: Session, booking_id: str, pin: str) -> Outcome:
    """Complete the job when `pin` matches; any failure answers False."""
    try:
        if not pin_matches(booking_id, pin):
            logger.info(f"Wrong completion PIN entered for booking {booking_id}")
            return Outcome(False)
        outcome = update_status(db, booking_id, BookingStatus.COMPLETED)
    except BookingError as e:
        logger.warning(f"Could not complete booking {booking_id}: {e.message}")
        return Outcome(False)
    except Exception as e:
        db.rollback()
        logger.error(f"Completion of booking {booking_id} failed: {e}")
        return Outcome(False)

    outcome.result = True
    return outcome


def rate_booking(
    db: Session,
    booking_id: str,
    rating: int,
    review: Optional[str] = None,
    provider_id: Optional[str] = None,
) -> Outcome:
    if not 1 <= rating <= 5:
        raise BookingValidationError("Rating must be between 1 and 5")

    result = db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.rating.is_(None))
        .values(rating=rating, review=review, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        get_booking(db, booking_id)  # NotFound wins over AlreadyRated
        raise AlreadyRatedError(booking_id)
    db.commit()
    logger.info(f"Booking {booking_id} rated {rating}")

    if provider_id:
        recalculate_provider_rating(db, provider_id)

    return Outcome(get_booking(db, booking_id))


def delete_booking(db: Session, booking_id: str) -> Outcome:
    booking = get_booking(db, booking_id)
    db.delete(booking)
    db.commit()
    logger.info(f"Booking {booking_id} deleted")
    return Outcome(booking_id)


def resend_assignment(db: Session, booking_id: str) -> Outcome:
    """Send the assigned provider the job e-mail and push again."""
    booking = get_booking(db, booking_id)
    if not booking.provider:
        raise NotFoundError("Assigned provider", booking_id)

    effects = _assignment_effects(
        booking,
        booking.provider,
        heading="Reminder: New Job Assigned",
        body="Check your dashboard for details.",
    )
    if not effects:
        raise BookingValidationError("User details missing for this booking")
    return Outcome(booking, effects)
