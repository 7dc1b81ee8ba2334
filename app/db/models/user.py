# app/db/models/user.py
import enum

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from app.db.base import Base, generate_uuid, utcnow


class Role(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    PROVIDER = "PROVIDER"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    # fixed at registration, there is no role migration
    role = Column(String, nullable=False, default=Role.CUSTOMER.value)

    phone = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    provider_profile = relationship("Provider", back_populates="user", uselist=False)
