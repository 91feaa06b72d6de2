"""Smoke tests: HTTP surface against an in-memory SQLite database"""
import pytest
from fastapi.testclient import TestClient

from relief_api.database import get_db
from relief_api.main import app
from relief_api.services.capability import CapabilityProbe
from relief_api.services.errors import QueryExecutionError

from conftest import FakeProbe


@pytest.fixture
def client(seeded, session_factory):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    original_probe = app.state.capability_probe
    app.dependency_overrides[get_db] = override_db
    app.state.capability_probe = CapabilityProbe(session_factory)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.capability_probe = original_probe


class TestHealthAndMeta:
    def test_health(self, client):
        r = client.get("/api/v1/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_openapi(self, client):
        r = client.get("/openapi.json")
        assert r.status_code == 200

    def test_spatial_diagnostics_on_sqlite(self, client):
        r = client.get("/api/v1/diagnostics/spatial")
        assert r.status_code == 200
        data = r.json()
        assert data["available"] is False
        assert data["state"] == "unavailable"
        assert "sqlite" in data["reason"]

    def test_spatial_diagnostics_refresh(self, client):
        r = client.get("/api/v1/diagnostics/spatial?refresh=true")
        assert r.status_code == 200
        assert r.json()["probed_at"] is not None


class TestNearbyDisasters:
    def test_nearby(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=40.7128&lng=-74.0060&radius=50000")
        assert r.status_code == 200
        data = r.json()
        assert data["backend_used"] == "scan"
        assert data["count"] == 2
        assert data["center"] == {"latitude": 40.7128, "longitude": -74.006}
        assert data["radius_meters"] == 50000
        dists = [d["distance_meters"] for d in data["results"]]
        assert dists == sorted(dists)
        for d in data["results"]:
            assert d["distance_km"] == round(d["distance_meters"] / 1000, 2)
            assert d["distance_meters"] <= 50000

    def test_nearby_with_tags(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=40.7128&lng=-74.0060&radius=50000&tags=flood")
        assert r.status_code == 200
        assert [d["id"] for d in r.json()["results"]] == ["d-flood"]

    def test_default_radius(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=40.7128&lng=-74.0060")
        assert r.status_code == 200
        assert r.json()["radius_meters"] == 50000

    def test_radius_zero(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=40.7128&lng=-74.0060&radius=0")
        assert r.status_code == 400

    def test_latitude_out_of_range(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=95&lng=-74.0060&radius=1000")
        assert r.status_code == 400
        assert "Latitude" in r.json()["detail"]

    def test_non_numeric_latitude(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=abc&lng=-74.0060")
        assert r.status_code == 422

    def test_malformed_tags(self, client):
        r = client.get("/api/v1/disasters/nearby?lat=40.7&lng=-74.0&tags=flood,,fire")
        assert r.status_code == 400


class TestNearbyResources:
    def test_nearby(self, client):
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060&radius=50000")
        assert r.status_code == 200
        data = r.json()
        assert [d["id"] for d in data["results"]] == ["r-shelter", "r-food", "r-hospital"]
        assert data["results"][0]["distance_meters"] == 0

    def test_type_filter(self, client):
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060&radius=50000&type=food")
        assert r.status_code == 200
        for res in r.json()["results"]:
            assert res["type"] == "food"

    def test_disaster_scope(self, client):
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060&radius=50000&disaster_id=d-flood")
        assert r.status_code == 200
        assert {d["disaster_id"] for d in r.json()["results"]} == {"d-flood"}

    def test_radius_above_ceiling(self, client):
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060&radius=100001")
        assert r.status_code == 400

    def test_backend_failure_is_server_error(self, client, monkeypatch):
        from relief_api.services import scan

        def boom(self, target, query):
            raise QueryExecutionError("db down")

        monkeypatch.setattr(scan.ScanProximityQuery, "execute", boom)
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060")
        assert r.status_code == 500


class TestBenchmarkEndpoints:
    def test_compare(self, client):
        r = client.get("/api/v1/diagnostics/benchmark?target=resources&lat=40.7128&lng=-74.0060&radius=50000")
        assert r.status_code == 200
        data = r.json()
        assert data["indexed"]["skipped"] is True
        assert data["scan"]["count"] == 3
        assert data["fastest"] == "scan"

    def test_compare_unknown_target(self, client):
        r = client.get("/api/v1/diagnostics/benchmark?target=reports&lat=0&lng=0")
        assert r.status_code == 400

    def test_batch(self, client):
        r = client.get("/api/v1/diagnostics/benchmark/batch?radius=50000")
        assert r.status_code == 200
        data = r.json()
        assert len(data["locations"]) == 5
        assert data["totals"]["resources"]["scan"] == 4

    def test_indexed_path_with_fake_probe(self, client, seeded):
        from relief_api.routes import deps
        from relief_api.services.proximity import ProximitySearchCoordinator

        from conftest import PostgisEmulatingStore

        app.dependency_overrides[deps.get_coordinator] = lambda: ProximitySearchCoordinator(
            PostgisEmulatingStore(seeded), FakeProbe(True)
        )
        r = client.get("/api/v1/resources/nearby?lat=40.7128&lng=-74.0060&radius=50000")
        assert r.status_code == 200
        assert r.json()["backend_used"] == "indexed"
        assert r.json()["count"] == 3
