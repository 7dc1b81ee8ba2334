import enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, generate_uuid, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    WAITING = "WAITING"  # no eligible provider found by the sweep
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # no FK: deleting a service leaves its bookings pointing at nothing
    service_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=True, index=True)

    description = Column(String, nullable=True)
    address = Column(String, nullable=False)
    area = Column(String, nullable=False)
    date = Column(String, nullable=False)
    time = Column(String, nullable=False)

    # snapshot of Service.base_price at creation
    amount = Column(Float, nullable=False)

    status = Column(String, nullable=False, default=BookingStatus.PENDING.value, index=True)
    # bumped on every status write, used for compare-and-swap
    version = Column(Integer, nullable=False, default=1)

    rating = Column(Integer, nullable=True)  # 1..5, set once
    review = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # relationships
    customer = relationship("User", foreign_keys=[customer_id], lazy="joined")
    provider = relationship("Provider", foreign_keys=[provider_id], lazy="joined")
    service = relationship(
        "Service",
        primaryjoin="foreign(Booking.service_id) == Service.id",
        viewonly=True,
        lazy="joined",
    )
