# app/api/routes/providers.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.db.models.booking import Booking
from app.db.models.provider import ApprovalStatus, Provider, ProviderPhoto
from app.db.models.user import Role, User
from app.schemas.provider import (
    ProviderActiveToggle,
    ProviderApproval,
    ProviderCreate,
    ProviderPhotoCreate,
    ProviderPhotoResponse,
    ProviderResponse,
    ProviderUpdate,
)
from app.core.security import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


def _get_provider(db: Session, provider_id: str) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id, Provider.is_deleted == False).first()  # noqa: E712
    if not provider:
        raise HTTPException(status_code=404, detail="Provider not found")
    return provider


def _require_owner_or_admin(provider: Provider, current_user: User):
    if current_user.role != Role.ADMIN.value and provider.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your provider profile")


# -------------------------
# Listing
# -------------------------
@router.get("", response_model=List[ProviderResponse])
def list_providers(db: Session = Depends(get_db)):
    return (
        db.query(Provider)
        .filter(Provider.is_deleted == False)  # noqa: E712
        .order_by(Provider.created_at)
        .all()
    )


@router.get("/pending", response_model=List[ProviderResponse])
def list_pending_providers(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return (
        db.query(Provider)
        .filter(Provider.approval_status == ApprovalStatus.PENDING.value, Provider.is_deleted == False)  # noqa: E712
        .order_by(Provider.created_at)
        .all()
    )


@router.get("/me", response_model=ProviderResponse)
def my_provider_profile(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    provider = (
        db.query(Provider)
        .filter(Provider.user_id == current_user.id, Provider.is_deleted == False)  # noqa: E712
        .first()
    )
    if not provider:
        raise HTTPException(status_code=404, detail="No provider profile for this user")
    return provider


# -------------------------
# Registration (self or admin)
# -------------------------
@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == Role.ADMIN.value:
        user_id = data.user_id or current_user.id
    elif current_user.role == Role.PROVIDER.value:
        user_id = current_user.id
    else:
        raise HTTPException(status_code=403, detail="Only providers or admins can create provider profiles")

    owner = db.query(User).filter(User.id == user_id).first()
    if not owner:
        raise HTTPException(status_code=404, detail="User not found")
    if owner.role != Role.PROVIDER.value:
        raise HTTPException(status_code=400, detail="User is not registered as a provider")

    existing = db.query(Provider).filter(Provider.user_id == user_id, Provider.is_deleted == False).first()  # noqa: E712
    if existing:
        raise HTTPException(status_code=400, detail="Provider profile already exists")

    # new providers wait for admin approval
    provider = Provider(
        user_id=user_id,
        skill=data.skill,
        area=data.area,
        bio=data.bio or "",
        experience_years=data.experience_years or 0,
        rating=0,
        is_active=False,
        approval_status=ApprovalStatus.PENDING.value,
        is_deleted=False,
    )
    db.add(provider)
    db.commit()
    db.refresh(provider)
    logger.info(f"Provider profile {provider.id} created for user {user_id} ({provider.skill})")
    return provider


# -------------------------
# Updates
# -------------------------
@router.put("/{provider_id}", response_model=ProviderResponse)
def update_provider(
    provider_id: str,
    update_data: ProviderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = _get_provider(db, provider_id)
    _require_owner_or_admin(provider, current_user)

    for field, value in update_data.dict(exclude_unset=True).items():
        setattr(provider, field, value)

    db.commit()
    db.refresh(provider)
    return provider


@router.put("/{provider_id}/approval", response_model=ProviderResponse)
def set_provider_approval(
    provider_id: str,
    decision: ProviderApproval,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    provider = _get_provider(db, provider_id)
    provider.approval_status = decision.approval_status
    provider.is_active = decision.approval_status == ApprovalStatus.ACTIVE.value
    db.commit()
    db.refresh(provider)
    logger.info(f"Provider {provider_id} set to {provider.approval_status} by {admin.id}")
    return provider


@router.put("/{provider_id}/active", response_model=ProviderResponse)
def set_provider_active(
    provider_id: str,
    toggle: ProviderActiveToggle,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    provider = _get_provider(db, provider_id)
    provider.is_active = toggle.is_active
    db.commit()
    db.refresh(provider)
    return provider


@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider(
    provider_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    provider = _get_provider(db, provider_id)
    try:
        provider.is_deleted = True
        db.commit()
    except SQLAlchemyError as e:
        # storage without the soft-delete column: remove the row instead
        db.rollback()
        if db.query(Booking.id).filter(Booking.provider_id == provider_id).first():
            logger.error(f"Soft delete of provider {provider_id} failed ({e}) and bookings still reference it")
            raise
        logger.warning(f"Soft delete of provider {provider_id} failed ({e}), deleting row")
        db.query(Provider).filter(Provider.id == provider_id).delete(synchronize_session=False)
        db.commit()
    logger.info(f"Provider {provider_id} deleted by {admin.id}")


# -------------------------
# Portfolio photos
# -------------------------
@router.post("/{provider_id}/photos", response_model=ProviderPhotoResponse, status_code=status.HTTP_201_CREATED)
def add_provider_photo(
    provider_id: str,
    photo: ProviderPhotoCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = _get_provider(db, provider_id)
    _require_owner_or_admin(provider, current_user)

    new_photo = ProviderPhoto(provider_id=provider.id, url=photo.url, caption=photo.caption)
    db.add(new_photo)
    db.commit()
    db.refresh(new_photo)
    return new_photo


@router.delete("/{provider_id}/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider_photo(
    provider_id: str,
    photo_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    provider = _get_provider(db, provider_id)
    _require_owner_or_admin(provider, current_user)

    photo = db.query(ProviderPhoto).filter(ProviderPhoto.id == photo_id, ProviderPhoto.provider_id == provider.id).first()
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")
    db.delete(photo)
    db.commit()
