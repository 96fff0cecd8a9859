"""Advisory status of an inspection from its defect list.

The resolver only classifies: it never moves an inspection through its
lifecycle.  :func:`initial_status` gives the persisted status a freshly
submitted inspection starts in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from inspection_core.defect_classifier import RuleTable, classify_defects
from inspection_core.health_score import score
from inspection_core.schemas import Defect, HealthStatus, InspectionStatus, Severity

DANGER_SCORE_THRESHOLD = 50
WARNING_SCORE_THRESHOLD = 80


@dataclass(frozen=True)
class StatusResolution:
    """Derived classification of one inspection.

    Attributes
    ----------
    status : HealthStatus
        ``danger`` | ``warning`` | ``ok``.
    score : int
        Health score in ``[0, 100]``.
    critical_count, warning_count, minor_count : int
        Defects per severity after classification.
    """

    status: HealthStatus
    score: int
    critical_count: int
    warning_count: int
    minor_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "score": self.score,
            "critical_count": self.critical_count,
            "warning_count": self.warning_count,
            "minor_count": self.minor_count,
        }


def resolve(
    defects: Optional[Sequence[Defect]],
    *,
    rules: Optional[RuleTable] = None,
) -> StatusResolution:
    """Classify *defects* and apply the danger / warning / ok decision table."""
    classified = classify_defects(defects or [], rules=rules)

    critical_count = sum(1 for d in classified if d.severity == Severity.CRITICAL)
    warning_count = sum(1 for d in classified if d.severity == Severity.WARNING)
    minor_count = sum(1 for d in classified if d.severity == Severity.MINOR)
    health = score(classified)

    if critical_count > 0 or health < DANGER_SCORE_THRESHOLD:
        status = HealthStatus.DANGER
    elif warning_count > 0 or health < WARNING_SCORE_THRESHOLD:
        status = HealthStatus.WARNING
    else:
        status = HealthStatus.OK

    return StatusResolution(
        status=status,
        score=health,
        critical_count=critical_count,
        warning_count=warning_count,
        minor_count=minor_count,
    )


def initial_status(resolution: StatusResolution) -> InspectionStatus:
    """Persisted status for a newly submitted inspection.

    ``ok`` still waits for a human reviewer.
    """
    if resolution.status == HealthStatus.DANGER:
        return InspectionStatus.REQUIRES_ACTION
    return InspectionStatus.PENDING_REVIEW
