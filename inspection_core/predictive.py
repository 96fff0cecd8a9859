"""Heuristic failure-risk estimate from a vehicle's inspection history.

Not a model: the fraction of recent inspections that reported critical
or warning defects is mapped onto three fixed risk tiers.  The caller
passes ``now`` explicitly so results are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

from inspection_core.defect_classifier import RuleTable, effective_severity
from inspection_core.schemas import Inspection, Severity

DEFAULT_WINDOW_DAYS = 180

HIGH_CRITICAL_RATE = 0.3
MEDIUM_WARNING_RATE = 0.5
MEDIUM_CRITICAL_RATE = 0.1

RiskLevel = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class RiskPrediction:
    """Risk tier with its canned recommendation.

    Attributes
    ----------
    risk : str
        ``"high"`` | ``"medium"`` | ``"low"``.
    probability : int
        Fixed per-tier failure probability, in percent.
    recommended_actions : list[str]
        Human-readable next steps.
    estimated_cost : int
        Flat per-tier cost estimate, in euros.
    critical_rate, warning_rate : float
        Fraction of in-window inspections with at least one defect of
        that severity.
    inspection_count : int
        Inspections inside the window.
    """

    risk: RiskLevel
    probability: int
    recommended_actions: List[str]
    estimated_cost: int
    critical_rate: float = 0.0
    warning_rate: float = 0.0
    inspection_count: int = 0
    window_days: int = DEFAULT_WINDOW_DAYS
    computed_at: Optional[datetime] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk": self.risk,
            "probability": self.probability,
            "recommended_actions": list(self.recommended_actions),
            "estimated_cost": self.estimated_cost,
            "critical_rate": self.critical_rate,
            "warning_rate": self.warning_rate,
            "inspection_count": self.inspection_count,
            "window_days": self.window_days,
        }


def _has_severity(
    inspection: Inspection,
    severity: Severity,
    rules: Optional[RuleTable],
) -> bool:
    return any(effective_severity(d, rules=rules) == severity for d in inspection.defects)


def _in_window(inspection: Inspection, since: datetime, now: datetime) -> bool:
    created = inspection.created_at
    # Stored timestamps may be naive UTC; compare like with like.
    if created.tzinfo is None and since.tzinfo is not None:
        since = since.replace(tzinfo=None)
        now = now.replace(tzinfo=None)
    elif created.tzinfo is not None and since.tzinfo is None:
        created = created.replace(tzinfo=None)
    return since <= created <= now


def estimate_risk(
    inspections: Sequence[Inspection],
    now: datetime,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    rules: Optional[RuleTable] = None,
) -> RiskPrediction:
    """Estimate the failure risk of one vehicle.

    Parameters
    ----------
    inspections :
        The vehicle's inspections; those outside
        ``[now - window_days, now]`` are ignored.
    now :
        Reference time for the window.
    window_days :
        Look-back window, 180 days by default.
    """
    since = now - timedelta(days=window_days)
    recent = [i for i in inspections if _in_window(i, since, now)]

    if not recent:
        return RiskPrediction(
            risk="low",
            probability=10,
            recommended_actions=["Perform a routine inspection"],
            estimated_cost=0,
            window_days=window_days,
            computed_at=now,
        )

    total = len(recent)
    critical_rate = sum(1 for i in recent if _has_severity(i, Severity.CRITICAL, rules)) / total
    warning_rate = sum(1 for i in recent if _has_severity(i, Severity.WARNING, rules)) / total

    if critical_rate > HIGH_CRITICAL_RATE:
        risk: RiskLevel = "high"
        probability = 75
        actions = [
            "Full inspection immediately",
            "Check safety systems",
            "Preventive replacement of worn parts",
        ]
        cost = 1500
    elif warning_rate > MEDIUM_WARNING_RATE or critical_rate > MEDIUM_CRITICAL_RATE:
        risk = "medium"
        probability = 45
        actions = [
            "Thorough inspection within 7 days",
            "Monitor the identified wear points",
        ]
        cost = 500
    else:
        risk = "low"
        probability = 15
        actions = ["Regular maintenance is sufficient"]
        cost = 0

    return RiskPrediction(
        risk=risk,
        probability=probability,
        recommended_actions=actions,
        estimated_cost=cost,
        critical_rate=critical_rate,
        warning_rate=warning_rate,
        inspection_count=total,
        window_days=window_days,
        computed_at=now,
    )
