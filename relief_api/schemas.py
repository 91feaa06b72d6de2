"""Pydantic schema definitions"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel


# === Responses ===

class CenterOut(BaseModel):
    latitude: float
    longitude: float


class DisasterNearbyOut(BaseModel):
    id: str
    title: str
    location_name: str
    latitude: float
    longitude: float
    description: Optional[str] = None
    tags: List[str] = []
    owner_id: Optional[str] = None
    distance_meters: float
    distance_km: float
    class Config:
        from_attributes = True


class ResourceNearbyOut(BaseModel):
    id: str
    name: str
    location_name: str
    latitude: float
    longitude: float
    type: str
    disaster_id: str
    distance_meters: float
    distance_km: float
    class Config:
        from_attributes = True


class NearbyDisastersResponse(BaseModel):
    results: List[DisasterNearbyOut]
    count: int
    center: CenterOut
    radius_meters: float
    backend_used: str


class NearbyResourcesResponse(BaseModel):
    results: List[ResourceNearbyOut]
    count: int
    center: CenterOut
    radius_meters: float
    backend_used: str


class CapabilityOut(BaseModel):
    available: bool
    state: str
    reason: Optional[str] = None
    remediation: Optional[str] = None
    probed_at: Optional[str] = None


class BenchmarkOut(BaseModel):
    target: str
    center: CenterOut
    radius_meters: float
    indexed: Dict[str, Any]
    scan: Dict[str, Any]
    http: Dict[str, Any]
    fastest: Optional[str] = None
    consistent: Optional[bool] = None


class BatchOut(BaseModel):
    radius_meters: float
    locations: List[Dict[str, Any]]
    totals: Dict[str, Dict[str, int]]
    mismatches: int
