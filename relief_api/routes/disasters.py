"""Disaster endpoints"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..schemas import NearbyDisastersResponse
from ..services.errors import SearchError
from ..services.proximity import ProximitySearchCoordinator, build_query, parse_tags
from ..services.query import DISASTERS
from .deps import get_coordinator, outcome_payload, to_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/disasters", tags=["disasters"])


@router.get("/nearby", response_model=NearbyDisastersResponse)
def nearby_disasters(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: Optional[float] = Query(None, description="Radius (m), default 50km"),
    tags: Optional[str] = Query(None, description="Comma separated tags (match any)"),
    coordinator: ProximitySearchCoordinator = Depends(get_coordinator),
):
    try:
        query = build_query(DISASTERS, lat, lng, radius, tags=parse_tags(tags))
        outcome = coordinator.search(DISASTERS, query)
    except SearchError as e:
        raise to_http_error(e)

    logger.info(f"Nearby disasters: {outcome.count} within {outcome.radius_m:.0f}m via {outcome.backend_used.value}")
    return outcome_payload(outcome)
