"""Database models for the inspection API."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from inspection_api.db.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Vehicle(Base):
    """Vehicle registry, created on first inspection."""

    __tablename__ = "vehicles"

    id = Column(String(50), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    inspections = relationship("VehicleInspection", back_populates="vehicle")


class Intervention(Base):
    """Maintenance record created when a validation leaves defects unrepaired."""

    __tablename__ = "interventions"

    id = Column(String(36), primary_key=True, default=_new_id)
    vehicle_id = Column(String(50), ForeignKey("vehicles.id"), nullable=False, index=True)
    inspection_id = Column(String(36), nullable=False, index=True)
    description = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class VehicleInspection(Base):
    """Driver-submitted inspection and its review state."""

    __tablename__ = "vehicle_inspections"

    id = Column(String(36), primary_key=True, default=_new_id)
    vehicle_id = Column(String(50), ForeignKey("vehicles.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    mileage = Column(Integer, nullable=False, default=0)
    fuel_levels = Column(JSONType, nullable=True)
    # Defects (with severity and, after validation, repair outcome) as JSON
    defects = Column(JSONType, nullable=False, default=list)
    inspection_type = Column(String(20), nullable=False, default="pre_trip")
    driver_id = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Lifecycle: pending_review | requires_action | validated
    status = Column(String(20), nullable=False, default="pending_review", index=True)
    reviewed_by = Column(String(50), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    intervention_id = Column(String(36), ForeignKey("interventions.id"), nullable=True)

    # Advisory odometer check against the previous inspection
    odometer_anomaly = Column(Boolean, nullable=False, default=False)
    odometer_reason = Column(Text, nullable=True)

    # Relationships
    vehicle = relationship("Vehicle", back_populates="inspections")
