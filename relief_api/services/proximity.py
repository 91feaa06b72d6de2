"""Proximity search coordinator.

The single entry point for nearby searches: validates the query, picks the
PostGIS backend when the probe allows it and falls back to the scan backend
when PostGIS turns out to be missing or broken.
"""
import enum
import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .capability import CapabilityProbe
from .errors import BackendUnavailableError, ValidationError
from .geo import Point
from .indexed import IndexedProximityQuery
from .query import ProximityQuery, ProximityResult, SearchTarget
from .scan import ScanProximityQuery
from .storage import SpatialStore

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"[\w][\w\- ]{0,49}")
MAX_TAGS = 20


class Backend(str, enum.Enum):
    INDEXED = "indexed"
    SCAN = "scan"


@dataclass(frozen=True)
class SearchOutcome:
    results: List[ProximityResult]
    backend_used: Backend
    center: Point
    radius_m: float

    @property
    def count(self) -> int:
        return len(self.results)


def parse_tags(raw: Optional[str]) -> Optional[frozenset]:
    """Comma separated tag list -> frozenset (None when absent)"""
    if raw is None:
        return None
    tags = [t.strip() for t in raw.split(",")]
    return validate_tags(tags)


def validate_tags(tags: Optional[Iterable[str]]) -> Optional[frozenset]:
    if tags is None:
        return None
    tags = list(tags)
    if not tags:
        raise ValidationError("tags must contain at least one tag")
    if len(tags) > MAX_TAGS:
        raise ValidationError(f"at most {MAX_TAGS} tags are allowed")
    for tag in tags:
        if not isinstance(tag, str) or not TAG_PATTERN.fullmatch(tag):
            raise ValidationError(f"malformed tag: {tag!r}")
    return frozenset(tags)


def build_query(
    target: SearchTarget,
    lat,
    lng,
    radius_m=None,
    tags: Optional[Iterable[str]] = None,
    type_filter: Optional[str] = None,
    scope_id: Optional[str] = None,
) -> ProximityQuery:
    """Raw caller input -> validated ProximityQuery"""
    query = ProximityQuery(
        center=Point(_as_float(lat, "latitude"), _as_float(lng, "longitude")),
        radius_m=target.default_radius_m if radius_m is None else _as_float(radius_m, "radius"),
        tag_filter=validate_tags(tags),
        type_filter=type_filter or None,
        scope_id=scope_id or None,
    )
    validate_query(target, query)
    return query


def _as_float(value, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite")
    return number


def validate_query(target: SearchTarget, query: ProximityQuery) -> None:
    lat = query.center.latitude
    lng = query.center.longitude
    if not (math.isfinite(lat) and -90 <= lat <= 90):
        raise ValidationError("Latitude must be a number between -90 and 90")
    if not (math.isfinite(lng) and -180 <= lng <= 180):
        raise ValidationError("Longitude must be a number between -180 and 180")
    if not math.isfinite(query.radius_m) or query.radius_m <= 0:
        raise ValidationError("Radius must be a positive number of meters")
    if query.radius_m > target.max_radius_m:
        raise ValidationError(
            f"Radius must be at most {target.max_radius_m:,.0f} meters for {target.name}"
        )
    if query.tag_filter is not None:
        if not target.tags_column:
            raise ValidationError(f"{target.name} cannot be filtered by tags")
        validate_tags(query.tag_filter)
    if query.type_filter is not None and not target.type_column:
        raise ValidationError(f"{target.name} cannot be filtered by type")
    if query.scope_id is not None and not target.scope_column:
        raise ValidationError(f"{target.name} cannot be scoped by a parent id")


class ProximitySearchCoordinator:

    def __init__(
        self,
        store: SpatialStore,
        probe: CapabilityProbe,
        indexed: Optional[IndexedProximityQuery] = None,
        scan: Optional[ScanProximityQuery] = None,
    ):
        self.probe = probe
        self._indexed = indexed or IndexedProximityQuery(store)
        self._scan = scan or ScanProximityQuery(store)

    def search(self, target: SearchTarget, query: ProximityQuery) -> SearchOutcome:
        validate_query(target, query)

        if self.probe.is_indexed_backend_available():
            try:
                results = self._indexed.execute(target, query)
                return self._outcome(results, Backend.INDEXED, query)
            except BackendUnavailableError as e:
                # logged by the probe, once per probe cycle
                self.probe.mark_unavailable(str(e), kind=e.kind)

        # QueryExecutionError from either backend propagates to the caller
        results = self._scan.execute(target, query)
        return self._outcome(results, Backend.SCAN, query)

    @staticmethod
    def _outcome(results: List[ProximityResult], backend: Backend, query: ProximityQuery) -> SearchOutcome:
        return SearchOutcome(
            results=results,
            backend_used=backend,
            center=query.center,
            radius_m=query.radius_m,
        )
