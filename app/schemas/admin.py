# app/schemas/admin.py
from pydantic import BaseModel


class DashboardAdminResponse(BaseModel):
    total_bookings: int
    pending_bookings: int
    waiting_bookings: int
    assigned_bookings: int
    in_progress_bookings: int
    completed_bookings: int
    revenue: float
    total_providers: int
    pending_providers: int
    total_services: int
