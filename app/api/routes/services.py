# app/api/routes/services.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.db.models.service import Service
from app.db.models.user import User
from app.schemas.service import ServiceCreate, ServiceUpdate, ServiceResponse
from app.core.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])


# Public catalog

@router.get("", response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    return db.query(Service).order_by(Service.name).all()


@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: str, db: Session = Depends(get_db)):
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(404, "Service not found")
    return service


# Admin creates service

@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    service_data: ServiceCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    new_service = Service(**service_data.dict())

    db.add(new_service)
    db.commit()
    db.refresh(new_service)

    logger.info(f"Service '{new_service.name}' created by {admin.id}")
    return new_service


# Admin updates service

@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: str,
    update_data: ServiceUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(404, "Service not found")

    # Update fields one-by-one
    for field, value in update_data.dict(exclude_unset=True).items():
        setattr(service, field, value)

    db.commit()
    db.refresh(service)
    return service


# Admin deletes service
# Bookings keep their service_id, nothing cascades

@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(404, "Service not found")

    db.delete(service)
    db.commit()
    logger.info(f"Service {service_id} deleted by {admin.id}")
