"""Per-vehicle endpoints: inspection history and predictive risk."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Depends, Query

from inspection_api.api.deps import get_repository
from inspection_api.api.v1.endpoints.inspections import _to_response
from inspection_api.api.v1.schemas import InspectionListResponse, RiskResponse
from inspection_api.config import settings
from inspection_core.predictive import estimate_risk
from inspection_core.workflow import InspectionRepository

logger = structlog.get_logger()

router = APIRouter()


@router.get("/{vehicle_id}/inspections", response_model=InspectionListResponse)
def list_vehicle_inspections(
    vehicle_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repository: InspectionRepository = Depends(get_repository),
) -> InspectionListResponse:
    """Newest first."""
    rows = repository.list_for_vehicle(vehicle_id, limit=limit, offset=offset)
    return InspectionListResponse(
        vehicle_id=vehicle_id,
        items=[_to_response(i) for i in rows],
        limit=limit,
        offset=offset,
    )


@router.get("/{vehicle_id}/risk", response_model=RiskResponse)
def vehicle_risk(
    vehicle_id: str,
    repository: InspectionRepository = Depends(get_repository),
) -> RiskResponse:
    """
    Heuristic failure risk from the share of recent inspections that
    reported critical or warning defects.
    """
    now = datetime.now(timezone.utc)
    window = settings.predictive_window_days
    history = repository.list_for_vehicle(vehicle_id, since=now - timedelta(days=window))
    prediction = estimate_risk(history, now, window_days=window)
    logger.info(
        "risk_estimated",
        vehicle_id=vehicle_id,
        risk=prediction.risk,
        inspection_count=prediction.inspection_count,
    )
    return RiskResponse(vehicle_id=vehicle_id, **prediction.to_dict())
