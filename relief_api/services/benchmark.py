"""Benchmark harness: PostGIS vs scan (vs live API) on the same query.

Diagnostics only; never on the request-serving path.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import requests

from .capability import CapabilityProbe
from .errors import SearchError
from .geo import Point
from .indexed import IndexedProximityQuery
from .proximity import Backend, validate_query
from .query import DISASTERS, RESOURCES, ProximityQuery, SearchTarget
from .scan import ScanProximityQuery
from .storage import SpatialStore

logger = logging.getLogger(__name__)

HTTP_PATH = "http"

# geographically spread centers for batch runs
TEST_LOCATIONS = [
    {"name": "New York", "lat": 40.7128, "lng": -74.006},
    {"name": "London", "lat": 51.5074, "lng": -0.1278},
    {"name": "Tokyo", "lat": 35.6762, "lng": 139.6503},
    {"name": "Sydney", "lat": -33.8688, "lng": 151.2093},
    {"name": "Rio de Janeiro", "lat": -22.9068, "lng": -43.1729},
]


@dataclass
class PathTiming:
    time_ms: Optional[float] = None
    count: Optional[int] = None
    ids: List[str] = field(default_factory=list)
    skipped: bool = False
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.skipped and self.error is None

    def to_dict(self) -> dict:
        if self.skipped:
            return {"skipped": True, "reason": self.reason}
        out = {"time_ms": self.time_ms, "count": self.count}
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class BenchmarkReport:
    target: str
    center: Point
    radius_m: float
    indexed: PathTiming
    scan: PathTiming
    http: PathTiming

    @property
    def fastest(self) -> Optional[str]:
        timed = [
            (timing.time_ms, name)
            for name, timing in ((Backend.INDEXED.value, self.indexed),
                                 (Backend.SCAN.value, self.scan),
                                 (HTTP_PATH, self.http))
            if timing.ok
        ]
        return min(timed)[1] if timed else None

    @property
    def consistent(self) -> Optional[bool]:
        """Both backends returned the same ids in the same order (None if not comparable)"""
        if not (self.indexed.ok and self.scan.ok):
            return None
        return self.indexed.ids == self.scan.ids

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "center": {"latitude": self.center.latitude, "longitude": self.center.longitude},
            "radius_meters": self.radius_m,
            "indexed": self.indexed.to_dict(),
            "scan": self.scan.to_dict(),
            "http": self.http.to_dict(),
            "fastest": self.fastest,
            "consistent": self.consistent,
        }


class BenchmarkHarness:

    def __init__(
        self,
        store: SpatialStore,
        probe: CapabilityProbe,
        api_url: Optional[str] = None,
        http_timeout: float = 10.0,
        indexed: Optional[IndexedProximityQuery] = None,
        scan: Optional[ScanProximityQuery] = None,
        http_session: Optional[requests.Session] = None,
    ):
        self.store = store
        self.probe = probe
        self.api_url = api_url.rstrip("/") if api_url else None
        self.http_timeout = http_timeout
        self.indexed = indexed or IndexedProximityQuery(store)
        self.scan = scan or ScanProximityQuery(store)
        self.http = http_session or requests.Session()

    def compare(self, target: SearchTarget, query: ProximityQuery) -> BenchmarkReport:
        validate_query(target, query)
        self.store.begin_snapshot()

        if self.probe.is_indexed_backend_available():
            indexed = self._time_backend(self.indexed, target, query)
        else:
            indexed = PathTiming(skipped=True, reason=self.probe.diagnostics()["reason"] or "PostGIS unavailable")

        scan = self._time_backend(self.scan, target, query)
        http = self._time_http(target, query)

        report = BenchmarkReport(
            target=target.name,
            center=query.center,
            radius_m=query.radius_m,
            indexed=indexed,
            scan=scan,
            http=http,
        )
        logger.info(
            f"Benchmark {target.name} @ ({query.center.latitude}, {query.center.longitude}) "
            f"r={query.radius_m:.0f}m: indexed={indexed.to_dict()} scan={scan.to_dict()} "
            f"http={http.to_dict()} fastest={report.fastest}"
        )
        return report

    def batch(
        self,
        radius_m: float,
        targets: Sequence[SearchTarget] = (RESOURCES, DISASTERS),
        locations: Sequence[dict] = tuple(TEST_LOCATIONS),
    ) -> dict:
        """compare() at every test location; per-location counts and agreement"""
        rows = []
        mismatches = 0
        for loc in locations:
            center = Point(loc["lat"], loc["lng"])
            entry: Dict[str, object] = {
                "location": loc["name"],
                "center": {"latitude": center.latitude, "longitude": center.longitude},
            }
            for target in targets:
                report = self.compare(target, ProximityQuery(center=center, radius_m=radius_m))
                if report.consistent is False:
                    mismatches += 1
                entry[target.name] = {
                    "indexed_count": report.indexed.count,
                    "scan_count": report.scan.count,
                    "indexed_time_ms": report.indexed.time_ms,
                    "scan_time_ms": report.scan.time_ms,
                    "consistent": report.consistent,
                }
            rows.append(entry)

        return {
            "radius_meters": radius_m,
            "locations": rows,
            "totals": {
                t.name: {
                    "indexed": sum(r[t.name]["indexed_count"] or 0 for r in rows),
                    "scan": sum(r[t.name]["scan_count"] or 0 for r in rows),
                }
                for t in targets
            },
            "mismatches": mismatches,
        }

    def _time_backend(self, backend, target: SearchTarget, query: ProximityQuery) -> PathTiming:
        start = time.perf_counter()
        try:
            results = backend.execute(target, query)
        except SearchError as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning(f"Benchmark {type(backend).__name__} failed: {e}")
            return PathTiming(time_ms=round(elapsed, 2), error=str(e))
        elapsed = (time.perf_counter() - start) * 1000
        return PathTiming(
            time_ms=round(elapsed, 2),
            count=len(results),
            ids=[r.entity["id"] for r in results],
        )

    def _time_http(self, target: SearchTarget, query: ProximityQuery) -> PathTiming:
        if not self.api_url:
            return PathTiming(skipped=True, reason="BENCHMARK_API_URL not configured")

        params = {
            "lat": query.center.latitude,
            "lng": query.center.longitude,
            "radius": query.radius_m,
        }
        if query.tag_filter:
            params["tags"] = ",".join(sorted(query.tag_filter))
        if query.type_filter:
            params["type"] = query.type_filter
        if query.scope_id:
            params["disaster_id"] = query.scope_id

        start = time.perf_counter()
        try:
            r = self.http.get(f"{self.api_url}/{target.name}/nearby", params=params, timeout=self.http_timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            elapsed = (time.perf_counter() - start) * 1000
            return PathTiming(time_ms=round(elapsed, 2), error=str(e))
        elapsed = (time.perf_counter() - start) * 1000

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not all(isinstance(item, dict) for item in results):
            return PathTiming(
                time_ms=round(elapsed, 2),
                error=f"unexpected response body from {target.name}/nearby: {type(data).__name__}",
            )
        return PathTiming(
            time_ms=round(elapsed, 2),
            count=data.get("count", len(results)),
            ids=[item.get("id") for item in results],
        )
