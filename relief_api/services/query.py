"""Proximity query value types and searchable targets"""
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .. import config
from ..models import Disaster, Resource
from .geo import Point


@dataclass(frozen=True)
class SearchTarget:
    """A table the engine can search and the filters it supports"""
    name: str
    model: type
    columns: Tuple[str, ...]
    default_radius_m: float
    max_radius_m: float
    tags_column: Optional[str] = None
    type_column: Optional[str] = None
    scope_column: Optional[str] = None

    @property
    def table(self) -> str:
        return self.model.__tablename__

    def row_to_entity(self, row) -> Dict[str, Any]:
        """ORM object or row mapping -> plain dict of output columns"""
        if isinstance(row, dict):
            entity = {c: row.get(c) for c in self.columns}
        else:
            entity = {c: getattr(row, c) for c in self.columns}
        if self.tags_column:
            entity[self.tags_column] = list(entity.get(self.tags_column) or [])
        return entity


DISASTERS = SearchTarget(
    name="disasters",
    model=Disaster,
    columns=("id", "title", "location_name", "latitude", "longitude",
             "description", "tags", "owner_id"),
    default_radius_m=config.DISASTER_DEFAULT_RADIUS_M,
    max_radius_m=config.DISASTER_MAX_RADIUS_M,
    tags_column="tags",
)

RESOURCES = SearchTarget(
    name="resources",
    model=Resource,
    columns=("id", "name", "location_name", "latitude", "longitude",
             "type", "disaster_id"),
    default_radius_m=config.RESOURCE_DEFAULT_RADIUS_M,
    max_radius_m=config.RESOURCE_MAX_RADIUS_M,
    type_column="type",
    scope_column="disaster_id",
)

TARGETS = {t.name: t for t in (DISASTERS, RESOURCES)}


@dataclass(frozen=True)
class ProximityQuery:
    center: Point
    radius_m: float
    tag_filter: Optional[FrozenSet[str]] = None
    type_filter: Optional[str] = None
    scope_id: Optional[str] = None


@dataclass(frozen=True)
class ProximityResult:
    entity: Dict[str, Any]
    distance_m: float

    @property
    def distance_km(self) -> float:
        return round(self.distance_m / 1000, 2)
