"""Resource endpoints"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..schemas import NearbyResourcesResponse
from ..services.errors import SearchError
from ..services.proximity import ProximitySearchCoordinator, build_query
from ..services.query import RESOURCES
from .deps import get_coordinator, outcome_payload, to_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/resources", tags=["resources"])


@router.get("/nearby", response_model=NearbyResourcesResponse)
def nearby_resources(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: Optional[float] = Query(None, description="Radius (m), default 10km"),
    type: Optional[str] = Query(None, description="Resource type (shelter, hospital, food, ...)"),
    disaster_id: Optional[str] = Query(None, description="Only resources of this disaster"),
    coordinator: ProximitySearchCoordinator = Depends(get_coordinator),
):
    try:
        query = build_query(RESOURCES, lat, lng, radius, type_filter=type, scope_id=disaster_id)
        outcome = coordinator.search(RESOURCES, query)
    except SearchError as e:
        raise to_http_error(e)

    logger.info(f"Nearby resources: {outcome.count} within {outcome.radius_m:.0f}m via {outcome.backend_used.value}")
    return outcome_payload(outcome)
