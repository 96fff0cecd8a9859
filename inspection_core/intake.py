"""Intake of a driver-submitted inspection.

Fills missing severities, derives the initial lifecycle status, checks
the odometer against the vehicle's previous inspection and persists the
result through an :class:`~inspection_core.workflow.base.InspectionRepository`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog

from inspection_core.defect_classifier import RuleTable, classify_defects
from inspection_core.health_score import ScoreTrend, score, score_trend
from inspection_core.odometer import OdometerCheck, check_against_previous
from inspection_core.schemas import Inspection, InspectionSubmission, RecordedDefect
from inspection_core.status_resolver import StatusResolution, initial_status, resolve
from inspection_core.workflow.base import InspectionRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubmittedInspection:
    """A stored inspection plus everything derived while accepting it."""

    inspection: Inspection
    resolution: StatusResolution
    odometer: Optional[OdometerCheck]
    trend: ScoreTrend

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inspection": self.inspection.model_dump(mode="json"),
            "resolution": self.resolution.to_dict(),
            "odometer": self.odometer.to_dict() if self.odometer is not None else None,
            "trend": {"trend": self.trend.trend, "diff": self.trend.diff},
        }


def submit_inspection(
    repository: InspectionRepository,
    submission: InspectionSubmission,
    *,
    now: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None,
    rules: Optional[RuleTable] = None,
) -> SubmittedInspection:
    """Classify, resolve and persist *submission*.

    The odometer check and score trend compare against the vehicle's
    most recent stored inspection; both are advisory and never block
    the submission.
    """
    created_at = now or datetime.now(timezone.utc)
    inspection_id = id_factory() if id_factory is not None else str(uuid.uuid4())

    classified = classify_defects(submission.defects, rules=rules)
    resolution = resolve(classified, rules=rules)

    previous_rows = repository.list_for_vehicle(submission.vehicle_id, limit=1)
    previous = previous_rows[0] if previous_rows else None

    odometer: Optional[OdometerCheck] = None
    previous_score: Optional[int] = None
    if previous is not None:
        previous_at = previous.created_at
        current_at = created_at
        if previous_at.tzinfo is None and current_at.tzinfo is not None:
            current_at = current_at.replace(tzinfo=None)
        elif previous_at.tzinfo is not None and current_at.tzinfo is None:
            previous_at = previous_at.replace(tzinfo=None)
        odometer = check_against_previous(
            previous.mileage, previous_at, submission.mileage, current_at
        )
        previous_score = score(previous.defects, rules=rules)

    inspection = Inspection(
        id=inspection_id,
        vehicle_id=submission.vehicle_id,
        created_at=created_at,
        mileage=submission.mileage,
        fuel_levels=submission.fuel_levels,
        defects=[RecordedDefect.model_validate(d.model_dump()) for d in classified],
        inspection_type=submission.inspection_type,
        status=initial_status(resolution),
        driver_id=submission.driver_id,
        notes=submission.notes,
        odometer_anomaly=bool(odometer and odometer.is_anomaly),
        odometer_reason=odometer.reason if odometer is not None else None,
    )
    stored = repository.add(inspection)

    if odometer is not None and odometer.is_anomaly:
        logger.warning(
            "odometer_anomaly",
            inspection_id=inspection_id,
            vehicle_id=submission.vehicle_id,
            reason=odometer.reason,
        )
    logger.info(
        "inspection_submitted",
        inspection_id=inspection_id,
        vehicle_id=submission.vehicle_id,
        status=stored.status.value,
        health=resolution.status.value,
        score=resolution.score,
        defect_count=len(classified),
    )

    return SubmittedInspection(
        inspection=stored,
        resolution=resolution,
        odometer=odometer,
        trend=score_trend(previous_score, resolution.score),
    )
