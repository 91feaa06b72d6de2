"""Shared fixtures: in-memory SQLite database and fakes for the PostGIS path"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from relief_api.database import Base
from relief_api.models import Disaster, Resource
from relief_api.services.errors import StorageError, StorageErrorKind
from relief_api.services.geo import EARTH_RADIUS_M, Point, haversine_m
from relief_api.services.indexed import POSTGIS_SPHERE_RADIUS_M
from relief_api.services.storage import SpatialStore

OWNER = "owner-1"

NEW_YORK = Point(40.7128, -74.0060)
MIDTOWN = Point(40.7589, -73.9851)
LONDON = Point(51.5074, -0.1278)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db):
    """A few disasters and resources around New York plus one in London"""
    flood = Disaster(id="d-flood", title="Flood", location_name="Midtown", latitude=MIDTOWN.latitude,
                     longitude=MIDTOWN.longitude, description="", tags=["flood", "urgent"], owner_id=OWNER)
    quake = Disaster(id="d-quake", title="Quake", location_name="Manhattan", latitude=40.7282,
                     longitude=-73.9942, description="", tags=["earthquake"], owner_id=OWNER)
    london = Disaster(id="d-london", title="Thames", location_name="London", latitude=LONDON.latitude,
                      longitude=LONDON.longitude, description="", tags=["flood"], owner_id=OWNER)
    db.add_all([flood, quake, london])
    db.flush()
    db.add_all([
        Resource(id="r-shelter", disaster_id="d-flood", name="Shelter NYC", location_name="Lower Manhattan",
                 latitude=NEW_YORK.latitude, longitude=NEW_YORK.longitude, type="shelter"),
        Resource(id="r-hospital", disaster_id="d-flood", name="Hospital NYC", location_name="Midtown",
                 latitude=MIDTOWN.latitude, longitude=MIDTOWN.longitude, type="hospital"),
        Resource(id="r-food", disaster_id="d-quake", name="Food Bank NYC", location_name="Village",
                 latitude=40.7282, longitude=-73.9942, type="food"),
        Resource(id="r-london", disaster_id="d-london", name="Shelter London", location_name="Westminster",
                 latitude=LONDON.latitude, longitude=LONDON.longitude, type="shelter"),
    ])
    db.commit()
    return db


@pytest.fixture
def co_located(seeded):
    """Two resources at one site, inserted in reverse id order"""
    site = Point(40.7306, -73.9866)
    seeded.add_all([
        Resource(id="r-site-b", disaster_id="d-flood", name="Water point", location_name="Union Sq",
                 latitude=site.latitude, longitude=site.longitude, type="water"),
        Resource(id="r-site-a", disaster_id="d-flood", name="First aid", location_name="Union Sq",
                 latitude=site.latitude, longitude=site.longitude, type="medical"),
    ])
    seeded.commit()
    return site


class FakeProbe:
    """CapabilityProbe stand-in with a fixed answer"""

    def __init__(self, available: bool):
        self.available = available
        self.marked = []
        self.calls = 0

    def is_indexed_backend_available(self) -> bool:
        self.calls += 1
        return self.available

    def mark_unavailable(self, reason, kind=None):
        self.available = False
        self.marked.append((reason, kind))

    def probe(self, force=False):
        return self.available

    def diagnostics(self):
        return {
            "available": self.available,
            "state": "available" if self.available else "unavailable",
            "reason": None if self.available else "fake probe",
            "remediation": None,
            "probed_at": None,
        }


class PostgisEmulatingStore(SpatialStore):
    """SpatialStore whose raw execute() answers like the PostGIS statement would.

    Rows are computed from the real SQLite tables with the bound parameters
    only, so the indexed backend can be exercised without PostgreSQL.
    """

    def __init__(self, db, fail_with: StorageErrorKind = None):
        super().__init__(db)
        self.fail_with = fail_with
        self.statements = []

    def execute(self, statement, params=None):
        self.statements.append((str(statement), dict(params or {})))
        if self.fail_with is not None:
            raise StorageError(self.fail_with, "simulated failure", sqlstate="42704")

        sql = str(statement)
        model = Disaster if "FROM disasters" in sql else Resource
        center = Point(params["lat"], params["lng"])
        rows = []
        for obj in self.db.query(model).all():
            # PostGIS sphere distance
            dist = haversine_m(center, Point(obj.latitude, obj.longitude)) * POSTGIS_SPHERE_RADIUS_M / EARTH_RADIUS_M
            if dist > params["radius"]:
                continue
            if params.get("scope_id") is not None and obj.disaster_id != params["scope_id"]:
                continue
            if params.get("type_filter") is not None and obj.type != params["type_filter"]:
                continue
            if params.get("tags") is not None and not set(params["tags"]) & set(obj.tags or []):
                continue
            row = {c.name: getattr(obj, c.name) for c in model.__table__.columns}
            row["distance_meters"] = dist
            rows.append(row)
        if "t.id ASC" in sql:
            rows.sort(key=lambda r: (r["distance_meters"], r["id"]))
        else:
            rows.sort(key=lambda r: r["distance_meters"])
        return rows


@pytest.fixture
def fake_probe_factory():
    return FakeProbe
