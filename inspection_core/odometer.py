"""Odometer plausibility checks between consecutive inspections.

Flags readings that are likely typos or tampering.  Advisory only; the
result is attached to the submitted inspection and never blocks it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

# Heavy-goods vehicles rarely exceed this daily distance.
MAX_KM_PER_DAY = 300
JUMP_TOLERANCE_FACTOR = 2
STAGNATION_MIN_KM = 10
STAGNATION_MIN_DAYS = 7


@dataclass(frozen=True)
class OdometerCheck:
    is_anomaly: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"is_anomaly": self.is_anomaly, "reason": self.reason}


def detect_odometer_anomaly(
    previous_mileage: float,
    current_mileage: float,
    days_since_last_inspection: float,
) -> OdometerCheck:
    """Compare two odometer readings taken *days_since_last_inspection* apart.

    Checks, in order: regression, implausible jump, stagnation.
    """
    if current_mileage < previous_mileage:
        return OdometerCheck(
            is_anomaly=True,
            reason="Mileage lower than previous reading (possible tampering)",
        )

    delta = current_mileage - previous_mileage
    max_expected = MAX_KM_PER_DAY * days_since_last_inspection

    if delta > max_expected * JUMP_TOLERANCE_FACTOR:
        return OdometerCheck(
            is_anomaly=True,
            reason=(
                f"Implausible mileage jump ({delta:g} km "
                f"in {days_since_last_inspection:g} days)"
            ),
        )

    if delta < STAGNATION_MIN_KM and days_since_last_inspection > STAGNATION_MIN_DAYS:
        return OdometerCheck(
            is_anomaly=True,
            reason="Vehicle unused or odometer stuck",
        )

    return OdometerCheck(is_anomaly=False)


def check_against_previous(
    previous_mileage: float,
    previous_at: datetime,
    current_mileage: float,
    current_at: datetime,
) -> OdometerCheck:
    """Same as :func:`detect_odometer_anomaly`, with days derived from timestamps.

    Both datetimes must be either naive or aware.
    """
    elapsed = (current_at - previous_at).total_seconds() / 86_400
    return detect_odometer_anomaly(previous_mileage, current_mileage, max(0.0, elapsed))
