# app/api/routes/search.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.provider import ProviderResponse
from app.services.location import LocationNormalizer, get_normalizer
from app.services.matching import search_providers

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/providers", response_model=List[ProviderResponse])
def search_service_providers(
    service: str = Query(..., description="Service name, matched exactly against provider skill"),
    area: str = Query("", description="Free-text area, e.g. 'Cidco N-2'"),
    db: Session = Depends(get_db),
    normalizer: LocationNormalizer = Depends(get_normalizer),
):
    """
    Active, approved providers for a service near an area.
    - `area` is normalized through the alias table (n1..n4 -> cidco, tv center -> hudco, ...)
    - a provider matches when either normalized area contains the other
    """
    return search_providers(db, service, area, normalizer)
