import structlog
from fastapi import APIRouter

from inspection_api.api.v1.schemas import (
    ClassifyRequest,
    ClassifyResponse,
    OdometerCheckRequest,
    OdometerOut,
    ResolutionOut,
    ScoreRequest,
    ScoreResponse,
)
from inspection_core.defect_classifier import classify_defects, explain
from inspection_core.health_score import score_trend
from inspection_core.odometer import detect_odometer_anomaly
from inspection_core.status_resolver import resolve

logger = structlog.get_logger()

router = APIRouter()


@router.post("/classify", response_model=ClassifyResponse)
def classify_defect(request: ClassifyRequest):
    """
    Tool: Classify one defect and report the matching rule and keywords.
    """
    trace = explain(request.category, request.description)
    logger.info("defect_classified", rule_id=trace.rule_id, severity=trace.severity.value)
    return ClassifyResponse(**trace.to_dict())


@router.post("/score", response_model=ScoreResponse)
def score_defects(request: ScoreRequest):
    """
    Tool: Health score and status resolution of a defect list.
    """
    classified = classify_defects(request.defects)
    resolution = resolve(classified)
    trend = score_trend(request.previous_score, resolution.score)
    return ScoreResponse(
        score=resolution.score,
        resolution=ResolutionOut(**resolution.to_dict()),
        defects=classified,
        trend={"trend": trend.trend, "diff": trend.diff},
    )


@router.post("/odometer-check", response_model=OdometerOut)
def odometer_check(request: OdometerCheckRequest):
    """
    Tool: Plausibility check of two consecutive odometer readings.
    """
    check = detect_odometer_anomaly(
        request.previous_mileage,
        request.current_mileage,
        request.days_since_last_inspection,
    )
    if check.is_anomaly:
        logger.info("odometer_anomaly_detected", reason=check.reason)
    return OdometerOut(**check.to_dict())
