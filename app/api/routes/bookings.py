import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.db.models.booking import Booking, BookingStatus
from app.db.models.provider import Provider
from app.db.models.user import Role, User
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    CompletionRequest,
    CompletionResponse,
    RatingCreate,
)
from app.core.security import get_current_user, require_admin
from app.services import booking_state
from app.services.notifications import NotificationDispatcher, get_dispatcher
from app.services.pin import completion_pin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _provider_profile(db: Session, user: User) -> Optional[Provider]:
    if user.role != Role.PROVIDER.value:
        return None
    return db.query(Provider).filter(Provider.user_id == user.id).first()


def _to_response(booking: Booking, viewer: User) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    if viewer.role == Role.ADMIN.value or booking.customer_id == viewer.id:
        response.completion_pin = completion_pin(booking.id)
    return response


def _load_visible_booking(db: Session, booking_id: str, current_user: User) -> Booking:
    booking = booking_state.get_booking(db, booking_id)
    if current_user.role == Role.ADMIN.value or booking.customer_id == current_user.id:
        return booking
    profile = _provider_profile(db, current_user)
    if profile and booking.provider_id == profile.id:
        return booking
    raise HTTPException(status_code=403, detail="Not your booking")


# Customer creates booking

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if current_user.role != Role.CUSTOMER.value:
        raise HTTPException(status_code=403, detail="Only customers can create bookings")

    outcome = booking_state.create_booking(
        db,
        current_user.id,
        booking.service_id,
        provider_id=booking.provider_id,
        description=booking.description,
        address=booking.address,
        area=booking.area,
        date=booking.date,
        time=booking.time,
    )
    dispatcher.dispatch(db, outcome.effects)
    return _to_response(outcome.result, current_user)


# Bookings visible to the caller, newest first

@router.get("", response_model=List[BookingResponse])
def list_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = db.query(Booking)
    if current_user.role == Role.CUSTOMER.value:
        q = q.filter(Booking.customer_id == current_user.id)
    elif current_user.role == Role.PROVIDER.value:
        profile = _provider_profile(db, current_user)
        if not profile:
            return []
        q = q.filter(
            Booking.provider_id == profile.id,
            Booking.status != BookingStatus.CANCELLED.value,
        )

    bookings = q.order_by(Booking.created_at.desc()).all()
    return [_to_response(b, current_user) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _load_visible_booking(db, booking_id, current_user)
    return _to_response(booking, current_user)


# Status changes
# admin: anything the lifecycle allows
# provider: start their own job
# customer: cancel their own booking

@router.put("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking = _load_visible_booking(db, booking_id, current_user)

    if current_user.role == Role.PROVIDER.value:
        if update.status != BookingStatus.IN_PROGRESS.value or update.provider_id:
            raise HTTPException(status_code=403, detail="Providers can only start their assigned jobs")
    elif current_user.role == Role.CUSTOMER.value:
        if update.status != BookingStatus.CANCELLED.value or booking.customer_id != current_user.id:
            raise HTTPException(status_code=403, detail="Customers can only cancel their bookings")

    outcome = booking_state.update_status(db, booking_id, update.status, update.provider_id)
    dispatcher.dispatch(db, outcome.effects)
    return _to_response(outcome.result, current_user)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking = booking_state.get_booking(db, booking_id)
    if current_user.role != Role.ADMIN.value and booking.customer_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your booking")

    outcome = booking_state.cancel_booking(db, booking_id)
    dispatcher.dispatch(db, outcome.effects)
    return _to_response(outcome.result, current_user)


# Provider completes job with the customer's PIN

@router.post("/{booking_id}/complete", response_model=CompletionResponse)
def complete_booking(
    booking_id: str,
    body: CompletionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if current_user.role not in (Role.PROVIDER.value, Role.ADMIN.value):
        raise HTTPException(status_code=403, detail="Providers only")
    _load_visible_booking(db, booking_id, current_user)

    outcome = booking_state.verify_and_complete(db, booking_id, body.pin)
    dispatcher.dispatch(db, outcome.effects)
    return CompletionResponse(completed=outcome.result)


# Customer rates a booking (once)

@router.post("/{booking_id}/rating", response_model=BookingResponse)
def rate_booking(
    booking_id: str,
    body: RatingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = booking_state.get_booking(db, booking_id)
    if booking.customer_id != current_user.id:
        raise HTTPException(status_code=403, detail="Booking does not belong to you")

    provider_id = body.provider_id or booking.provider_id
    outcome = booking_state.rate_booking(db, booking_id, body.rating, body.review, provider_id)
    return _to_response(outcome.result, current_user)


# Admin removes a booking (test or erroneous data)

@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    booking_state.delete_booking(db, booking_id)


# Admin re-sends the assignment e-mail/push

@router.post("/{booking_id}/notify-provider")
def notify_provider(
    booking_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    outcome = booking_state.resend_assignment(db, booking_id)
    result = dispatcher.dispatch(db, outcome.effects)
    return {"ok": True, "booking_id": booking_id, **result}
