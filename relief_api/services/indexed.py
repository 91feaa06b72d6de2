"""PostGIS backend — distance, radius pruning and ordering done in the database"""
import logging
from functools import lru_cache
from typing import List

from sqlalchemy import Text, bindparam, text
from sqlalchemy.dialects.postgresql import ARRAY

from .errors import (
    BackendUnavailableError, QueryExecutionError, StorageError, SPATIAL_UNAVAILABLE_KINDS,
)
from .geo import EARTH_RADIUS_M
from .query import ProximityQuery, ProximityResult, SearchTarget
from .storage import SpatialStore

logger = logging.getLogger(__name__)

# mean radius of the WGS84 spheroid, used by PostGIS geography when use_spheroid=false
POSTGIS_SPHERE_RADIUS_M = 6_371_008.7714

_ENTITY_POINT = "ST_MakePoint(t.longitude, t.latitude)::geography"
_CENTER_POINT = "ST_MakePoint(:lng, :lat)::geography"


@lru_cache(maxsize=None)
def build_statement(target: SearchTarget):
    """One fixed-shape statement per target.

    Optional filters are `(:param IS NULL OR ...)` so an absent filter matches
    everything; filter values only ever travel as bound parameters.
    """
    columns = ", ".join(f"t.{c}" for c in target.columns)
    # use_spheroid=false: sphere math, so results agree with the haversine scan backend.
    # :radius arrives scaled to the PostGIS sphere (see build_params)
    predicates = [f"ST_DWithin({_ENTITY_POINT}, {_CENTER_POINT}, :radius, false)"]
    binds = [bindparam("lat"), bindparam("lng"), bindparam("radius")]

    if target.scope_column:
        predicates.append(f"(CAST(:scope_id AS TEXT) IS NULL OR t.{target.scope_column} = :scope_id)")
        binds.append(bindparam("scope_id", type_=Text))
    if target.type_column:
        predicates.append(f"(CAST(:type_filter AS TEXT) IS NULL OR t.{target.type_column} = :type_filter)")
        binds.append(bindparam("type_filter", type_=Text))
    if target.tags_column:
        predicates.append(
            f"(CAST(:tags AS TEXT[]) IS NULL OR t.{target.tags_column} && CAST(:tags AS TEXT[]))"
        )
        binds.append(bindparam("tags", type_=ARRAY(Text)))

    sql = (
        f"SELECT {columns}, ST_Distance({_ENTITY_POINT}, {_CENTER_POINT}, false) AS distance_meters "
        f"FROM {target.table} AS t "
        f"WHERE {' AND '.join(predicates)} "
        f"ORDER BY distance_meters ASC, t.id ASC"
    )
    return text(sql).bindparams(*binds)


def build_params(target: SearchTarget, query: ProximityQuery) -> dict:
    """Bound values for build_statement().

    The radius is stretched from EARTH_RADIUS_M to the PostGIS sphere so that
    ST_DWithin keeps exactly the entities whose haversine distance is within
    the requested radius.
    """
    params = {
        "lat": query.center.latitude,
        "lng": query.center.longitude,
        "radius": query.radius_m * POSTGIS_SPHERE_RADIUS_M / EARTH_RADIUS_M,
    }
    if target.scope_column:
        params["scope_id"] = query.scope_id
    if target.type_column:
        params["type_filter"] = query.type_filter
    if target.tags_column:
        params["tags"] = sorted(query.tag_filter) if query.tag_filter else None
    return params


class IndexedProximityQuery:
    """Nearby search through ST_DWithin / ST_Distance over geography points"""

    def __init__(self, store: SpatialStore):
        self.store = store

    def execute(self, target: SearchTarget, query: ProximityQuery) -> List[ProximityResult]:
        try:
            rows = self.store.execute(build_statement(target), build_params(target, query))
        except StorageError as e:
            if e.kind in SPATIAL_UNAVAILABLE_KINDS:
                raise BackendUnavailableError(
                    f"PostGIS unavailable for {target.name} search: {e}", kind=e.kind
                ) from e
            raise QueryExecutionError(f"Indexed {target.name} search failed: {e}") from e

        return [
            ProximityResult(entity=target.row_to_entity(row), distance_m=float(row["distance_meters"]))
            for row in rows
        ]
