"""SQLAlchemy model definitions"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Float, DateTime, ForeignKey, JSON, Index
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import relationship
from .database import Base

# text[] on PostgreSQL (needed for the && overlap operator), JSON list elsewhere
TagList = JSON().with_variant(ARRAY(Text), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class Disaster(Base):
    """Disaster record"""
    __tablename__ = "disasters"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(Text, nullable=False)
    location_name = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(TagList, nullable=False, default=list)
    owner_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    resources = relationship("Resource", back_populates="disaster")

    __table_args__ = (
        Index("idx_disasters_latlng", "latitude", "longitude"),
    )


class Resource(Base):
    """Relief resource (shelter, hospital, food, ...) attached to a disaster"""
    __tablename__ = "resources"

    id = Column(String(36), primary_key=True, default=_new_id)
    disaster_id = Column(String(36), ForeignKey("disasters.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    location_name = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    type = Column(String(50), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    disaster = relationship("Disaster", back_populates="resources")

    __table_args__ = (
        Index("idx_resources_latlng", "latitude", "longitude"),
    )
