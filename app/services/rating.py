import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models.booking import Booking
from app.db.models.provider import Provider

logger = logging.getLogger(__name__)


def round_rating(value: float) -> float:
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# Helper: recalc provider aggregate from every rated booking
def recalculate_provider_rating(db: Session, provider_id: str) -> Optional[float]:
    total, count = (
        db.query(func.coalesce(func.sum(Booking.rating), 0), func.count(Booking.rating))
        .filter(Booking.provider_id == provider_id, Booking.rating.isnot(None))
        .one()
    )
    if not count:
        return None

    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if not provider:
        logger.warning(f"Cannot update rating, provider {provider_id} not found")
        return None

    provider.rating = round_rating(float(total) / count)
    db.commit()
    logger.info(f"Provider {provider_id} rating is now {provider.rating} over {count} reviews")
    return provider.rating
