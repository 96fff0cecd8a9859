"""CRUD operations for the inspection API.

Helpers here never commit; the caller owns the transaction.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from inspection_api import models_db
from inspection_core.schemas import (
    AWAITING_VALIDATION,
    FuelLevels,
    Inspection,
    InspectionStatus,
    InterventionDraft,
    RecordedDefect,
)
from inspection_core.workflow.base import ValidationCommit


def get_or_create_vehicle(db: Session, vehicle_id: str) -> models_db.Vehicle:
    """Find-or-create the vehicle row."""
    vehicle = db.query(models_db.Vehicle).filter(models_db.Vehicle.id == vehicle_id).first()
    if not vehicle:
        vehicle = models_db.Vehicle(id=vehicle_id)
        db.add(vehicle)
        db.flush()
    return vehicle


def create_inspection(db: Session, inspection: Inspection) -> models_db.VehicleInspection:
    """Insert an inspection row (vehicle created on demand)."""
    get_or_create_vehicle(db, inspection.vehicle_id)
    row = models_db.VehicleInspection(
        id=inspection.id,
        vehicle_id=inspection.vehicle_id,
        created_at=inspection.created_at,
        mileage=inspection.mileage,
        fuel_levels=inspection.fuel_levels.model_dump(mode="json"),
        defects=[d.model_dump(mode="json") for d in inspection.defects],
        inspection_type=inspection.inspection_type.value,
        driver_id=inspection.driver_id,
        notes=inspection.notes,
        status=inspection.status.value,
        odometer_anomaly=inspection.odometer_anomaly,
        odometer_reason=inspection.odometer_reason,
    )
    db.add(row)
    db.flush()
    return row


def get_inspection(db: Session, inspection_id: str) -> Optional[models_db.VehicleInspection]:
    """Retrieve an inspection by ID."""
    return (
        db.query(models_db.VehicleInspection)
        .filter(models_db.VehicleInspection.id == inspection_id)
        .first()
    )


def list_inspections(
    db: Session,
    vehicle_id: str,
    *,
    since: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[models_db.VehicleInspection]:
    """A vehicle's inspections, newest first."""
    query = db.query(models_db.VehicleInspection).filter(
        models_db.VehicleInspection.vehicle_id == vehicle_id
    )
    if since is not None:
        query = query.filter(models_db.VehicleInspection.created_at >= since)
    query = query.order_by(
        models_db.VehicleInspection.created_at.desc(),
        models_db.VehicleInspection.id.desc(),
    ).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def create_intervention(db: Session, draft: InterventionDraft) -> models_db.Intervention:
    """Insert an intervention row and flush so its id is available."""
    row = models_db.Intervention(
        vehicle_id=draft.vehicle_id,
        inspection_id=draft.inspection_id,
        description=draft.description,
        priority=draft.priority,
        status=draft.status,
    )
    db.add(row)
    db.flush()
    return row


def get_intervention(db: Session, intervention_id: str) -> Optional[models_db.Intervention]:
    return (
        db.query(models_db.Intervention)
        .filter(models_db.Intervention.id == intervention_id)
        .first()
    )


def mark_validated(
    db: Session,
    commit: ValidationCommit,
    intervention_id: Optional[str],
) -> int:
    """Conditionally move an inspection to ``validated``.

    Only matches rows still awaiting validation.  Returns the number of
    rows updated (0 or 1).
    """
    stmt = (
        update(models_db.VehicleInspection)
        .where(models_db.VehicleInspection.id == commit.inspection_id)
        .where(
            models_db.VehicleInspection.status.in_([s.value for s in AWAITING_VALIDATION])
        )
        .values(
            status=InspectionStatus.VALIDATED.value,
            reviewed_by=commit.reviewed_by,
            reviewed_at=commit.reviewed_at,
            review_notes=commit.review_notes,
            intervention_id=intervention_id,
            defects=[d.model_dump(mode="json") for d in commit.defects],
        )
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount


def to_domain(row: models_db.VehicleInspection) -> Inspection:
    """Convert a database row into the core ``Inspection`` model."""
    return Inspection(
        id=row.id,
        vehicle_id=row.vehicle_id,
        created_at=row.created_at,
        mileage=row.mileage,
        fuel_levels=FuelLevels.model_validate(row.fuel_levels or {}),
        defects=[RecordedDefect.model_validate(d) for d in row.defects or []],
        inspection_type=row.inspection_type,
        status=row.status,
        driver_id=row.driver_id,
        notes=row.notes,
        reviewed_by=row.reviewed_by,
        reviewed_at=row.reviewed_at,
        review_notes=row.review_notes,
        intervention_id=row.intervention_id,
        odometer_anomaly=bool(row.odometer_anomaly),
        odometer_reason=row.odometer_reason,
    )
