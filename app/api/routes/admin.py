# app/api/routes/admin.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.base import get_db, utcnow
from app.db.models.booking import Booking, BookingStatus
from app.db.models.provider import ApprovalStatus, Provider
from app.db.models.service import Service
from app.db.models.user import User
from app.schemas.admin import DashboardAdminResponse
from app.schemas.booking import SweepSummary
from app.core.security import require_admin
from app.services.auto_assign import sweep_stale_bookings
from app.services.notifications import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

CSV_HEADERS = ["ID", "Date", "Time", "Customer", "Phone", "Service", "Provider", "Area", "Status", "Amount"]


def _csv_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def bookings_to_csv(bookings) -> str:
    """
    Plain comma-joined export. Fields are not quoted or escaped, so a comma
    inside a name or area shifts the columns of that row.
    """
    lines = [",".join(CSV_HEADERS)]
    for b in bookings:
        provider_name = b.provider.user.name if b.provider and b.provider.user else "Unassigned"
        row = [
            b.id,
            b.date,
            b.time,
            b.customer.name if b.customer else "",
            (b.customer.phone if b.customer else "") or "",
            b.service.name if b.service else "",
            provider_name,
            b.area,
            b.status,
            b.amount,
        ]
        lines.append(",".join(_csv_value(v) for v in row))
    return "\n".join(lines)


# --------------------------------------------------
# 1. Admin summary (platform KPIs)
# --------------------------------------------------
@router.get("/summary", response_model=DashboardAdminResponse)
def admin_summary(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    counts = dict(db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all())
    revenue = db.query(func.coalesce(func.sum(Booking.amount), 0)).filter(
        Booking.status == BookingStatus.COMPLETED.value
    ).scalar() or 0.0

    live_providers = db.query(func.count(Provider.id)).filter(Provider.is_deleted == False)  # noqa: E712
    total_providers = live_providers.scalar() or 0
    pending_providers = live_providers.filter(Provider.approval_status == ApprovalStatus.PENDING.value).scalar() or 0
    total_services = db.query(func.count(Service.id)).scalar() or 0

    return DashboardAdminResponse(
        total_bookings=int(sum(counts.values())),
        pending_bookings=int(counts.get(BookingStatus.PENDING.value, 0)),
        waiting_bookings=int(counts.get(BookingStatus.WAITING.value, 0)),
        assigned_bookings=int(counts.get(BookingStatus.ASSIGNED.value, 0)),
        in_progress_bookings=int(counts.get(BookingStatus.IN_PROGRESS.value, 0)),
        completed_bookings=int(counts.get(BookingStatus.COMPLETED.value, 0)),
        revenue=float(revenue),
        total_providers=int(total_providers),
        pending_providers=int(pending_providers),
        total_services=int(total_services),
    )


# --------------------------------------------------
# 2. Bookings CSV export
# --------------------------------------------------
@router.get("/bookings/export")
def export_bookings(
    status: Optional[str] = Query(None, description="Only export bookings in this status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Booking)
    if status:
        q = q.filter(Booking.status == status)
    bookings = q.order_by(Booking.created_at.desc()).all()

    filename = f"localbookr-export-{utcnow().date().isoformat()}.csv"
    return Response(
        content=bookings_to_csv(bookings),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --------------------------------------------------
# 3. Run the auto-assignment sweep now
# --------------------------------------------------
@router.post("/bookings/sweep", response_model=SweepSummary)
def run_sweep(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    outcome = sweep_stale_bookings(db)
    dispatcher.dispatch(db, outcome.effects)
    logger.info(f"Manual sweep by {admin.id}: {outcome.result}")
    return outcome.result
