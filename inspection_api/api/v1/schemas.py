from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from inspection_core.schemas import (
    Defect,
    DefectDecision,
    HealthStatus,
    Inspection,
    Severity,
)


class HealthResponse(BaseModel):
    status: str
    version: str


class ResolutionOut(BaseModel):
    status: HealthStatus
    score: int
    critical_count: int
    warning_count: int
    minor_count: int


class OdometerOut(BaseModel):
    is_anomaly: bool
    reason: Optional[str] = None


class InspectionResponse(BaseModel):
    """
    An inspection with the fields derived from its defects.
    """
    inspection: Inspection
    resolution: ResolutionOut
    odometer: Optional[OdometerOut] = None
    trend: Optional[Dict[str, Any]] = Field(None, description="Score trend vs the previous inspection")


class InspectionListResponse(BaseModel):
    vehicle_id: str
    items: List[InspectionResponse]
    limit: int
    offset: int


class ValidateRequest(BaseModel):
    """
    Reviewer decisions, one per stored defect, in stored order.
    """
    vehicle_id: str = Field(..., min_length=1, max_length=50)
    defects: List[DefectDecision] = Field(default_factory=list)


class RiskResponse(BaseModel):
    vehicle_id: str
    risk: Literal["high", "medium", "low"]
    probability: int
    recommended_actions: List[str]
    estimated_cost: int
    critical_rate: float
    warning_rate: float
    inspection_count: int
    window_days: int


class ClassifyRequest(BaseModel):
    category: str = Field(..., description="Defect category tag, e.g. 'tires'")
    description: str = Field("", description="Free-text defect description")


class ClassifyResponse(BaseModel):
    severity: Severity
    rule_id: str
    keyword_hits: Dict[str, List[str]]


class ScoreRequest(BaseModel):
    defects: List[Defect] = Field(default_factory=list)
    previous_score: Optional[int] = Field(None, ge=0, le=100)


class ScoreResponse(BaseModel):
    score: int
    resolution: ResolutionOut
    defects: List[Defect]
    trend: Dict[str, Any]


class OdometerCheckRequest(BaseModel):
    previous_mileage: float = Field(..., ge=0)
    current_mileage: float = Field(..., ge=0)
    days_since_last_inspection: float = Field(..., ge=0)
