# app/db/models/provider.py
import enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, generate_uuid, utcnow


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"


class Provider(Base):
    """
    Provider profile attached to a PROVIDER user.
    skill is matched against Service.name by plain string equality.
    """
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    skill = Column(String, nullable=False, index=True)
    area = Column(String, nullable=False)

    rating = Column(Float, nullable=False, default=0)  # 0 when unrated
    is_active = Column(Boolean, nullable=False, default=False)
    approval_status = Column(String, nullable=False, default=ApprovalStatus.PENDING.value)

    experience_years = Column(Integer, nullable=True, default=0)
    bio = Column(String, nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False)
    push_subscription_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="provider_profile", lazy="joined")
    photos = relationship(
        "ProviderPhoto",
        back_populates="provider",
        order_by="ProviderPhoto.created_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ProviderPhoto(Base):
    __tablename__ = "provider_photos"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    provider_id = Column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    caption = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    provider = relationship("Provider", back_populates="photos")
