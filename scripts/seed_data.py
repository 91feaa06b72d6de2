#!/usr/bin/env python3
"""Create tables and load sample disasters/resources.

On PostgreSQL this also enables PostGIS and builds the GIST indexes the
indexed backend relies on.
"""

import sys
from pathlib import Path

# add project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select, text

from relief_api.database import engine, SessionLocal, Base
from relief_api.models import Disaster, Resource

POSTGIS_SETUP = [
    "CREATE EXTENSION IF NOT EXISTS postgis",
    "CREATE INDEX IF NOT EXISTS idx_disasters_geog ON disasters USING gist "
    "((ST_MakePoint(longitude, latitude)::geography))",
    "CREATE INDEX IF NOT EXISTS idx_resources_geog ON resources USING gist "
    "((ST_MakePoint(longitude, latitude)::geography))",
]

SAMPLE_OWNER = "00000000-0000-0000-0000-000000000001"

SAMPLE_DISASTERS = [
    ("NYC Flooding", "Manhattan, New York", 40.7128, -74.006, ["flood", "urgent"]),
    ("Midtown Building Fire", "Midtown, New York", 40.7589, -73.9851, ["fire"]),
    ("Thames Surge", "London", 51.5074, -0.1278, ["flood"]),
    ("Kanto Earthquake", "Tokyo", 35.6762, 139.6503, ["earthquake", "urgent"]),
    ("Sydney Bushfire", "Sydney", -33.8688, 151.2093, ["fire", "wildfire"]),
    ("Rio Landslide", "Rio de Janeiro", -22.9068, -43.1729, ["landslide"]),
]

# (name, location, lat, lng, type)
SAMPLE_RESOURCES = [
    ("Shelter NYC", "Lower Manhattan", 40.7128, -74.006, "shelter"),
    ("Hospital NYC", "Midtown", 40.7589, -73.9851, "hospital"),
    ("Food Bank NYC", "Greenwich Village", 40.7282, -73.9942, "food"),
    ("Shelter London", "Westminster", 51.5074, -0.1278, "shelter"),
    ("Shelter Tokyo", "Shinjuku", 35.6762, 139.6503, "shelter"),
    ("Shelter Sydney", "CBD", -33.8688, 151.2093, "shelter"),
    ("Shelter Rio", "Centro", -22.9068, -43.1729, "shelter"),
]


def setup_postgis(conn) -> bool:
    if engine.dialect.name != "postgresql":
        print(f"⏭️  {engine.dialect.name}: PostGIS setup skipped (scan backend only)")
        return False
    for sql in POSTGIS_SETUP:
        conn.execute(text(sql))
    print("🗺️  PostGIS extension and GIST indexes ready")
    return True


def seed(db) -> int:
    if db.scalar(select(func.count()).select_from(Disaster)):
        print("⏭️  Data already present, skipping seed")
        return 0

    disasters = [
        Disaster(title=title, location_name=loc, latitude=lat, longitude=lng,
                 description=f"Sample disaster: {title}", tags=tags, owner_id=SAMPLE_OWNER)
        for title, loc, lat, lng, tags in SAMPLE_DISASTERS
    ]
    db.add_all(disasters)
    db.flush()

    # attach every resource to the NYC disaster, as the original test data does
    parent = disasters[0]
    db.add_all([
        Resource(disaster_id=parent.id, name=name, location_name=loc,
                 latitude=lat, longitude=lng, type=rtype)
        for name, loc, lat, lng, rtype in SAMPLE_RESOURCES
    ])
    db.commit()
    return len(SAMPLE_DISASTERS) + len(SAMPLE_RESOURCES)


def main():
    print("🗄️  Creating tables...")
    if engine.dialect.name == "sqlite":
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)

    with engine.begin() as conn:
        setup_postgis(conn)

    db = SessionLocal()
    try:
        n = seed(db)
        print(f"   ✅ {n:,} rows")
    finally:
        db.close()

    print("\n🎉 Done!")


if __name__ == "__main__":
    main()
