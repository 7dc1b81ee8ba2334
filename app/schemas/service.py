# app/schemas/service.py

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


# Shared fields
class ServiceBase(BaseModel):
    name: str
    description: Optional[str] = None
    base_price: float = Field(..., ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    icon: Optional[str] = None


# Admin creates service
class ServiceCreate(ServiceBase):
    pass


# Admin updates service
class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    icon: Optional[str] = None


# What API returns
class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    base_price: float
    max_price: Optional[float] = None
    icon: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
