# app/db/models/service.py

from sqlalchemy import Column, DateTime, Float, String

from app.db.base import Base, generate_uuid, utcnow


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Basic details
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    icon = Column(String, nullable=True)

    # Pricing (informational only, bookings snapshot base_price)
    base_price = Column(Float, nullable=False)
    max_price = Column(Float, nullable=True)  # range-priced work

    created_at = Column(DateTime, default=utcnow)
