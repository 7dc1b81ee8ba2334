"""
Provider matching: interactive search and auto-assignment candidate pick.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.provider import ApprovalStatus, Provider
from app.services.location import LocationNormalizer, get_normalizer

logger = logging.getLogger(__name__)


def _eligible(db: Session, skill: str):
    # skill is matched exactly, case included
    return db.query(Provider).filter(
        Provider.skill == skill,
        Provider.is_active == True,  # noqa: E712
        Provider.approval_status == ApprovalStatus.ACTIVE.value,
        Provider.is_deleted == False,  # noqa: E712
    )


def search_providers(
    db: Session,
    service_name: str,
    area_query: str,
    normalizer: Optional[LocationNormalizer] = None,
) -> List[Provider]:
    """
    Providers offering `service_name` whose area fuzzily matches `area_query`.

    Both areas are normalized and a provider is kept when either string
    contains the other. No ranking is applied; an empty list is a normal
    result.
    """
    normalizer = normalizer or get_normalizer()
    candidates = _eligible(db, service_name).order_by(Provider.created_at, Provider.id).all()
    matched = [p for p in candidates if normalizer.matches(area_query, p.area)]
    logger.debug(f"search '{service_name}' in '{area_query}': {len(matched)}/{len(candidates)} providers")
    return matched


def _raw_area_overlap(booking_area: Optional[str], provider_area: Optional[str]) -> bool:
    a = (booking_area or "").lower().strip()
    b = (provider_area or "").lower().strip()
    # an empty booking area matches any provider, an empty provider area matches nothing
    if not b:
        return False
    return a in b or b in a


def best_candidate(db: Session, service_name: str, area: str) -> Optional[Provider]:
    """
    Highest rated eligible provider for an unassigned booking.

    Area matching here is the loose raw-string check (case-insensitive
    containment either way), not the alias normalization used by search.
    Ties on rating go to the provider registered first.
    """
    candidates = [
        p for p in _eligible(db, service_name).order_by(Provider.created_at, Provider.id).all()
        if _raw_area_overlap(area, p.area)
    ]
    if not candidates:
        return None
    # max() keeps the first of equal ratings
    return max(candidates, key=lambda p: p.rating or 0)
