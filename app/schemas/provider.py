# app/schemas/provider.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.user import UserResponse


class ProviderPhotoCreate(BaseModel):
    url: str
    caption: Optional[str] = None


class ProviderPhotoResponse(BaseModel):
    id: str
    provider_id: str
    url: str
    caption: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProviderCreate(BaseModel):
    # admins create profiles for other users, providers for themselves
    user_id: Optional[str] = None
    skill: str
    area: str
    bio: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)


class ProviderUpdate(BaseModel):
    skill: Optional[str] = None
    area: Optional[str] = None
    bio: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    push_subscription_id: Optional[str] = None


class ProviderApproval(BaseModel):
    approval_status: Literal["ACTIVE", "REJECTED"]


class ProviderActiveToggle(BaseModel):
    is_active: bool


class ProviderResponse(BaseModel):
    id: str
    user_id: str
    skill: str
    area: str
    rating: float
    is_active: bool
    approval_status: str
    experience_years: Optional[int] = None
    bio: Optional[str] = None
    is_deleted: bool = False
    user: Optional[UserResponse] = None
    photos: List[ProviderPhotoResponse] = []

    class Config:
        from_attributes = True
