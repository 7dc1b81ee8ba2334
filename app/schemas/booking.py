from pydantic import BaseModel, Field, conint
from datetime import datetime
from typing import Optional

from app.schemas.provider import ProviderResponse
from app.schemas.service import ServiceResponse
from app.schemas.user import UserResponse


# --- CREATE ---
class BookingCreate(BaseModel):
    service_id: str
    provider_id: Optional[str] = None  # chosen from search results
    description: Optional[str] = None
    address: str
    area: str
    date: str
    time: str


# --- UPDATE (Provider or Admin) ---
class BookingStatusUpdate(BaseModel):
    status: str = Field(
        ...,
        description="PENDING, WAITING, ASSIGNED, IN_PROGRESS, COMPLETED, CANCELLED",
    )
    provider_id: Optional[str] = None


class CompletionRequest(BaseModel):
    pin: str


class CompletionResponse(BaseModel):
    completed: bool


class RatingCreate(BaseModel):
    rating: conint(ge=1, le=5) = Field(..., description="Rating 1-5")
    review: Optional[str] = None
    provider_id: Optional[str] = None


# --- RESPONSE ---
class BookingResponse(BaseModel):
    id: str
    customer_id: str
    service_id: str
    provider_id: Optional[str] = None
    description: Optional[str] = None
    address: str
    area: str
    date: str
    time: str
    amount: float
    status: str
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    customer: Optional[UserResponse] = None
    service: Optional[ServiceResponse] = None
    provider: Optional[ProviderResponse] = None

    # only filled in for the booking's customer and admins
    completion_pin: Optional[str] = None

    class Config:
        from_attributes = True


class SweepSummary(BaseModel):
    scanned: int
    assigned: int
    waiting: int
    skipped: int
    failed: int
