"""Thread-safe in-memory inspection repository.

Used by the test-suite and by the CLI.  A single lock makes the
conditional status update and the intervention insert one atomic step,
which is the same guarantee the SQL store gets from its transaction.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from inspection_core.schemas import (
    AWAITING_VALIDATION,
    Inspection,
    InspectionStatus,
    InterventionDraft,
)
from inspection_core.workflow.base import InspectionRepository, ValidationCommit
from inspection_core.workflow.errors import AlreadyValidated, DownstreamWriteFailure


class InMemoryInspectionRepository(InspectionRepository):
    """Dict-backed repository.

    ``id_factory`` generates intervention ids (``uuid4`` by default) and
    can be replaced to simulate a failing maintenance subsystem.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None) -> None:
        self._lock = threading.Lock()
        self._inspections: Dict[str, Inspection] = {}
        self._interventions: Dict[str, InterventionDraft] = {}
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------
    # Inspections
    # ------------------------------------------------------------------

    def get(self, inspection_id: str) -> Optional[Inspection]:
        with self._lock:
            found = self._inspections.get(inspection_id)
            return found.model_copy(deep=True) if found is not None else None

    def add(self, inspection: Inspection) -> Inspection:
        with self._lock:
            self._inspections[inspection.id] = inspection.model_copy(deep=True)
        return inspection

    def list_for_vehicle(
        self,
        vehicle_id: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Inspection]:
        with self._lock:
            rows = [i for i in self._inspections.values() if i.vehicle_id == vehicle_id]
        if since is not None:
            rows = [i for i in rows if _as_aware(i.created_at) >= _as_aware(since)]
        rows.sort(key=lambda i: _as_aware(i.created_at), reverse=True)
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return [i.model_copy(deep=True) for i in rows]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def commit_validation(self, commit: ValidationCommit) -> Optional[str]:
        with self._lock:
            current = self._inspections.get(commit.inspection_id)
            if current is None or current.status not in AWAITING_VALIDATION:
                raise AlreadyValidated(
                    "Inspection is no longer awaiting validation",
                    inspection_id=commit.inspection_id,
                )

            intervention_id: Optional[str] = None
            if commit.intervention is not None:
                try:
                    intervention_id = self._id_factory()
                except Exception as exc:
                    raise DownstreamWriteFailure(
                        f"Intervention creation failed: {exc}",
                        inspection_id=commit.inspection_id,
                    ) from exc

            updated = current.model_copy(
                update={
                    "status": InspectionStatus.VALIDATED,
                    "reviewed_by": commit.reviewed_by,
                    "reviewed_at": commit.reviewed_at,
                    "review_notes": commit.review_notes,
                    "intervention_id": intervention_id,
                    "defects": list(commit.defects),
                },
                deep=True,
            )
            if intervention_id is not None:
                self._interventions[intervention_id] = commit.intervention
            self._inspections[commit.inspection_id] = updated
            return intervention_id

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    def interventions(self) -> Dict[str, InterventionDraft]:
        with self._lock:
            return dict(self._interventions)

    def size(self) -> int:
        with self._lock:
            return len(self._inspections)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
