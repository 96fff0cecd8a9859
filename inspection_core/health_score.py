"""Vehicle health score (0-100) derived from an inspection's defects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Sequence

from inspection_core.defect_classifier import RuleTable, effective_severity
from inspection_core.schemas import Defect, Severity

SEVERITY_PENALTIES: Dict[Severity, int] = {
    Severity.CRITICAL: 30,
    Severity.WARNING: 10,
    Severity.MINOR: 2,
    Severity.NONE: 0,
}

MAX_SCORE = 100

# Score deltas within +/- this band count as stable.
_TREND_BAND = 5


def penalty(severity: Severity) -> int:
    return SEVERITY_PENALTIES.get(severity, 0)


def score(defects: Optional[Sequence[Defect]], *, rules: Optional[RuleTable] = None) -> int:
    """Return the health score of a defect list.

    Each defect subtracts its severity penalty from 100 (its own
    ``severity`` when set, otherwise the classifier's).  The result is
    floored at 0.  Order of *defects* does not matter.
    """
    if not defects:
        return MAX_SCORE
    total = sum(penalty(effective_severity(d, rules=rules)) for d in defects)
    return max(0, int(round(MAX_SCORE - total)))


@dataclass(frozen=True)
class ScoreTrend:
    trend: Literal["up", "down", "stable"]
    diff: int


def score_trend(previous_score: Optional[int], current_score: int) -> ScoreTrend:
    """Compare two consecutive scores of the same vehicle.

    No previous score reads as stable.
    """
    if previous_score is None:
        return ScoreTrend(trend="stable", diff=0)
    diff = current_score - previous_score
    if diff > _TREND_BAND:
        return ScoreTrend(trend="up", diff=diff)
    if diff < -_TREND_BAND:
        return ScoreTrend(trend="down", diff=diff)
    return ScoreTrend(trend="stable", diff=diff)
