"""Inspection Pydantic v2 models.

Boundary shapes shared by the core library and the HTTP service:
submitted inspections, stored inspections, reviewer decisions and the
intervention creation contract.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Ordinal defect severity: critical > warning > minor > none."""

    CRITICAL = "critical"
    WARNING = "warning"
    MINOR = "minor"
    NONE = "none"

    @property
    def rank(self) -> int:
        """Higher rank means more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.MINOR: 1,
    Severity.WARNING: 2,
    Severity.CRITICAL: 3,
}


class DefectCategory(str, Enum):
    """Categories offered by the inspection form.

    Informative only: :class:`Defect` accepts any string so that legacy
    or free-typed categories still go through the classifier.
    """

    TIRES = "tires"
    BODY = "body"
    MECHANICAL = "mechanical"
    ELECTRICAL = "electrical"
    CLEANLINESS = "cleanliness"
    LIGHTS = "lights"
    FLUIDS = "fluids"
    SAFETY = "safety"
    CHASSIS = "chassis"
    INTERIOR = "interior"


class InspectionStatus(str, Enum):
    """Persisted inspection lifecycle state."""

    PENDING_REVIEW = "pending_review"
    REQUIRES_ACTION = "requires_action"
    VALIDATED = "validated"


AWAITING_VALIDATION = frozenset(
    [InspectionStatus.PENDING_REVIEW, InspectionStatus.REQUIRES_ACTION]
)


class HealthStatus(str, Enum):
    """Advisory classification produced by the status resolver."""

    DANGER = "danger"
    WARNING = "warning"
    OK = "ok"


class InspectionType(str, Enum):
    PRE_TRIP = "pre_trip"
    POST_TRIP = "post_trip"
    EMERGENCY = "emergency"


# ---------------------------------------------------------------------------
# Defects
# ---------------------------------------------------------------------------


class Defect(BaseModel):
    """A single reported vehicle anomaly, embedded in an inspection."""

    category: str = Field(
        ...,
        description="Defect category tag; free text, form values listed in examples",
        examples=[c.value for c in DefectCategory],
    )
    description: str = Field(default="", description="Operator-entered free text")
    severity: Optional[Severity] = Field(
        default=None,
        description="Filled by the classifier when absent",
    )
    location: str = Field(default="", description="Where on the vehicle")

    model_config = ConfigDict(extra="allow")


class DefectDecision(Defect):
    """A defect with the reviewer's repair decision attached."""

    repaired: bool = False
    repair_description: str = Field(default="", alias="repairDescription")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class RecordedDefect(Defect):
    """A defect as stored after validation, with its repair outcome."""

    repaired: Optional[bool] = None
    repair_description: Optional[str] = None


# ---------------------------------------------------------------------------
# Inspections
# ---------------------------------------------------------------------------


class FuelLevels(BaseModel):
    """Tank levels in percent, all optional."""

    fuel_level: Optional[int] = Field(default=None, ge=0, le=100)
    gasoil: Optional[int] = Field(default=None, ge=0, le=100)
    gnr: Optional[int] = Field(default=None, ge=0, le=100)
    adblue: Optional[int] = Field(default=None, ge=0, le=100)


class InspectionSubmission(BaseModel):
    """Inbound inspection record as filled in by the driver."""

    vehicle_id: str = Field(..., min_length=1, max_length=50)
    mileage: int = Field(..., ge=0, le=9_999_999)
    fuel_levels: FuelLevels = Field(default_factory=FuelLevels)
    defects: List[Defect] = Field(default_factory=list)
    inspection_type: InspectionType = InspectionType.PRE_TRIP
    driver_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class Inspection(BaseModel):
    """Stored inspection with its lifecycle and review fields."""

    id: str
    vehicle_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mileage: int = 0
    fuel_levels: FuelLevels = Field(default_factory=FuelLevels)
    defects: List[RecordedDefect] = Field(default_factory=list)
    inspection_type: InspectionType = InspectionType.PRE_TRIP
    status: InspectionStatus = InspectionStatus.PENDING_REVIEW
    driver_id: Optional[str] = None
    notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    intervention_id: Optional[str] = None
    odometer_anomaly: bool = False
    odometer_reason: Optional[str] = None

    @property
    def is_awaiting_validation(self) -> bool:
        return self.status in AWAITING_VALIDATION


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationRequest(BaseModel):
    """Reviewer submission: one decision per stored defect, in order."""

    inspection_id: str
    vehicle_id: str
    defects: List[DefectDecision] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Outcome of a successful validation."""

    success: bool = True
    inspection_id: str
    status: InspectionStatus = InspectionStatus.VALIDATED
    intervention_created: bool = False
    intervention_id: Optional[str] = None
    repaired_count: int = 0
    to_repair_count: int = 0
    review_notes: str = ""


class InterventionDraft(BaseModel):
    """Creation contract sent to the maintenance subsystem."""

    vehicle_id: str
    inspection_id: str
    description: str
    priority: Literal["critical", "high", "medium"] = "medium"
    status: Literal["pending"] = "pending"


class Reviewer(BaseModel):
    """Identity of the caller, as resolved by the upstream auth layer."""

    user_id: str = Field(..., min_length=1)
    role: Optional[str] = None
    capabilities: frozenset[str] = Field(default_factory=frozenset)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class InspectionWorkCompleted(BaseModel):
    """Event emitted after an inspection has been validated."""

    type: Literal["INSPECTION_WORK_COMPLETED"] = "INSPECTION_WORK_COMPLETED"
    inspection_id: str = Field(..., serialization_alias="inspectionId")
    has_anomalies: bool = Field(..., serialization_alias="hasAnomalies")
    anomalies_count: int = Field(..., serialization_alias="anomaliesCount")

    @field_validator("anomalies_count")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("anomalies_count must be >= 0")
        return v
