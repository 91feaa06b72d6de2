"""Diagnostics endpoints: spatial capability and backend benchmarks"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from .. import config
from ..schemas import BatchOut, BenchmarkOut, CapabilityOut
from ..services.benchmark import BenchmarkHarness
from ..services.capability import CapabilityProbe
from ..services.errors import SearchError
from ..services.proximity import build_query, parse_tags
from ..services.query import TARGETS
from ..services.storage import SpatialStore
from .deps import get_probe, get_store, to_http_error

router = APIRouter(prefix="/api/v1", tags=["diagnostics"])


def get_harness(
    store: SpatialStore = Depends(get_store),
    probe: CapabilityProbe = Depends(get_probe),
) -> BenchmarkHarness:
    return BenchmarkHarness(
        store, probe,
        api_url=config.BENCHMARK_API_URL,
        http_timeout=config.BENCHMARK_HTTP_TIMEOUT,
    )


@router.get("/diagnostics/spatial", response_model=CapabilityOut)
def spatial_capability(
    refresh: bool = Query(False, description="Force a new probe"),
    probe: CapabilityProbe = Depends(get_probe),
):
    if refresh:
        probe.probe(force=True)
    else:
        probe.is_indexed_backend_available()
    return probe.diagnostics()


@router.get("/diagnostics/benchmark", response_model=BenchmarkOut)
def benchmark(
    target: str = Query("resources", description="resources | disasters"),
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: Optional[float] = Query(None, description="Radius (m)"),
    tags: Optional[str] = Query(None, description="Comma separated tags (disasters)"),
    type: Optional[str] = Query(None, description="Resource type (resources)"),
    disaster_id: Optional[str] = Query(None, description="Disaster id (resources)"),
    harness: BenchmarkHarness = Depends(get_harness),
):
    search_target = TARGETS.get(target)
    if search_target is None:
        raise HTTPException(status_code=400, detail=f"Unknown target: {target}")
    try:
        query = build_query(
            search_target, lat, lng, radius,
            tags=parse_tags(tags), type_filter=type, scope_id=disaster_id,
        )
        report = harness.compare(search_target, query)
    except SearchError as e:
        raise to_http_error(e)
    return report.to_dict()


@router.get("/diagnostics/benchmark/batch", response_model=BatchOut)
def benchmark_batch(
    radius: float = Query(50000, gt=0, description="Radius (m)"),
    harness: BenchmarkHarness = Depends(get_harness),
):
    limit = min(t.max_radius_m for t in TARGETS.values())
    if radius > limit:
        raise HTTPException(status_code=400, detail=f"Radius must be at most {limit:,.0f} meters")
    try:
        return harness.batch(radius)
    except SearchError as e:
        raise to_http_error(e)


@router.get("/health")
def health():
    return {"status": "ok"}
