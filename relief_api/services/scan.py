"""Scan backend: haversine over every candidate in Python.

Always available and the fallback when PostGIS is not. Linear in the number of
candidate rows. The candidate read is not snapshot isolated: rows inserted or
deleted while a scan runs may or may not be seen (accepted, eventual consistency).
"""
import logging
from typing import List

from .. import config
from .errors import QueryExecutionError, StorageError
from .geo import Point, bounding_box, haversine_m
from .query import ProximityQuery, ProximityResult, SearchTarget
from .storage import SpatialStore

logger = logging.getLogger(__name__)


class ScanProximityQuery:

    def __init__(self, store: SpatialStore, bbox_prefilter: bool = config.SCAN_BBOX_PREFILTER):
        self.store = store
        self.bbox_prefilter = bbox_prefilter

    def execute(self, target: SearchTarget, query: ProximityQuery) -> List[ProximityResult]:
        bbox = bounding_box(query.center, query.radius_m) if self.bbox_prefilter else None
        try:
            candidates = self.store.fetch_candidates(
                target.model,
                scope_column=target.scope_column,
                scope_id=query.scope_id,
                bbox=bbox,
            )
        except StorageError as e:
            raise QueryExecutionError(f"Scan {target.name} search failed: {e}") from e

        results = []
        for row in candidates:
            if row.latitude is None or row.longitude is None:
                continue
            if query.type_filter and target.type_column:
                if getattr(row, target.type_column) != query.type_filter:
                    continue
            if query.tag_filter and target.tags_column:
                if not query.tag_filter.intersection(getattr(row, target.tags_column) or ()):
                    continue
            dist = haversine_m(query.center, Point(row.latitude, row.longitude))
            if dist <= query.radius_m:
                results.append(ProximityResult(entity=target.row_to_entity(row), distance_m=dist))

        # sort by distance, ties by id (same order as the indexed backend)
        results.sort(key=lambda r: (r.distance_m, r.entity["id"]))
        logger.debug(f"Scan {target.name}: {len(candidates)} candidates -> {len(results)} results")
        return results
