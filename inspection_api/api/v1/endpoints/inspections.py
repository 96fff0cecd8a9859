"""Inspection endpoints.

POST /v1/inspections                    -- submit; classify, score, odometer check, persist
GET  /v1/inspections/{inspection_id}    -- read with derived score / resolution
POST /v1/inspections/{inspection_id}/validate -- reviewer validation
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from inspection_api.api.deps import get_repository, get_reviewer, get_workflow
from inspection_api.api.v1.schemas import InspectionResponse, OdometerOut, ResolutionOut, ValidateRequest
from inspection_core.intake import submit_inspection
from inspection_core.schemas import (
    Inspection,
    InspectionSubmission,
    Reviewer,
    ValidationRequest,
    ValidationResult,
)
from inspection_core.status_resolver import resolve
from inspection_core.workflow import InspectionNotFound, InspectionRepository, ValidationWorkflow

router = APIRouter()


def _to_response(inspection: Inspection) -> InspectionResponse:
    resolution = resolve(inspection.defects)
    odometer = None
    if inspection.odometer_anomaly or inspection.odometer_reason:
        odometer = OdometerOut(
            is_anomaly=inspection.odometer_anomaly, reason=inspection.odometer_reason
        )
    return InspectionResponse(
        inspection=inspection,
        resolution=ResolutionOut(**resolution.to_dict()),
        odometer=odometer,
    )


@router.post("", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
def create_inspection(
    submission: InspectionSubmission,
    repository: InspectionRepository = Depends(get_repository),
) -> InspectionResponse:
    """
    Submit a driver inspection. Missing severities are classified and the
    initial status is derived from the defect list.
    """
    result = submit_inspection(repository, submission)
    return InspectionResponse(
        inspection=result.inspection,
        resolution=ResolutionOut(**result.resolution.to_dict()),
        odometer=OdometerOut(**result.odometer.to_dict()) if result.odometer else None,
        trend={"trend": result.trend.trend, "diff": result.trend.diff},
    )


@router.get("/{inspection_id}", response_model=InspectionResponse)
def get_inspection(
    inspection_id: str,
    repository: InspectionRepository = Depends(get_repository),
) -> InspectionResponse:
    inspection = repository.get(inspection_id)
    if inspection is None:
        raise InspectionNotFound(
            f"Inspection {inspection_id} not found", inspection_id=inspection_id
        )
    return _to_response(inspection)


@router.post("/{inspection_id}/validate", response_model=ValidationResult)
def validate_inspection(
    inspection_id: str,
    body: ValidateRequest,
    reviewer: Reviewer = Depends(get_reviewer),
    workflow: ValidationWorkflow = Depends(get_workflow),
) -> ValidationResult:
    """
    Apply the reviewer's per-defect decisions. Unrepaired defects are
    gathered into one intervention and the inspection becomes validated.
    """
    request = ValidationRequest(
        inspection_id=inspection_id,
        vehicle_id=body.vehicle_id,
        defects=body.defects,
    )
    return workflow.validate(request, reviewer)
