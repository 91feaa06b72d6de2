"""Shared route dependencies"""
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.capability import CapabilityProbe
from ..services.errors import QueryExecutionError, SearchError, ValidationError
from ..services.proximity import ProximitySearchCoordinator, SearchOutcome
from ..services.storage import SpatialStore


def get_probe(request: Request) -> CapabilityProbe:
    """The process-wide probe created in the app lifespan"""
    return request.app.state.capability_probe


def get_store(db: Session = Depends(get_db)) -> SpatialStore:
    return SpatialStore(db)


def get_coordinator(
    store: SpatialStore = Depends(get_store),
    probe: CapabilityProbe = Depends(get_probe),
) -> ProximitySearchCoordinator:
    return ProximitySearchCoordinator(store, probe)


def to_http_error(e: SearchError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, QueryExecutionError):
        return HTTPException(status_code=500, detail=f"Proximity search failed: {e}")
    return HTTPException(status_code=500, detail=str(e))


def outcome_payload(outcome: SearchOutcome) -> dict:
    return {
        "results": [
            {**r.entity, "distance_meters": r.distance_m, "distance_km": r.distance_km}
            for r in outcome.results
        ],
        "count": outcome.count,
        "center": {"latitude": outcome.center.latitude, "longitude": outcome.center.longitude},
        "radius_meters": outcome.radius_m,
        "backend_used": outcome.backend_used.value,
    }
