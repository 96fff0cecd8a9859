"""Reviewer validation of a submitted inspection.

Turns the reviewer's per-defect decisions into one state transition:

1. Authorise the caller and check the inspection can still be validated.
2. Reject the whole batch if any repaired defect lacks a repair note.
3. Gather every unrepaired defect into a single intervention draft.
4. Ask the repository to create the intervention and mark the inspection
   ``validated`` as one atomic write, guarded on the current status.
5. Tell the notifier, without letting its failures reach the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import structlog

from inspection_core.defect_classifier import effective_severity
from inspection_core.schemas import (
    AWAITING_VALIDATION,
    DefectDecision,
    Inspection,
    InspectionStatus,
    InspectionWorkCompleted,
    InterventionDraft,
    RecordedDefect,
    Reviewer,
    Severity,
    ValidationRequest,
    ValidationResult,
)
from inspection_core.workflow.base import InspectionRepository, Notifier, ValidationCommit
from inspection_core.workflow.errors import (
    AlreadyValidated,
    DecisionCountMismatch,
    DownstreamWriteFailure,
    InspectionNotFound,
    MissingRepairDescription,
    NotValidatable,
    Unauthorized,
    WorkflowError,
)

logger = structlog.get_logger(__name__)

VALIDATE_INSPECTION = "validate_inspection"
DEFAULT_VALIDATOR_ROLES: Tuple[str, ...] = ("admin", "agent_parc", "exploitation")

NOTES_NO_ANOMALY = "VALIDATED_NO_ANOMALY"
NOTES_ALL_REPAIRED = "VALIDATED_ALL_REPAIRED"
NOTES_WITH_INTERVENTION = "VALIDATED_WITH_INTERVENTION"


class RoleAccessPolicy:
    """Grants ``validate_inspection`` to a fixed set of roles.

    An explicit capability on the reviewer is honoured as well, so an
    upstream auth layer that already resolved capabilities needs no
    role mapping.
    """

    def __init__(self, validator_roles: Iterable[str] = DEFAULT_VALIDATOR_ROLES) -> None:
        self._roles = frozenset(r.strip().lower() for r in validator_roles if r.strip())

    def can_validate(self, reviewer: Reviewer) -> bool:
        if VALIDATE_INSPECTION in reviewer.capabilities:
            return True
        return reviewer.role is not None and reviewer.role.strip().lower() in self._roles


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def check_repair_notes(decisions: Sequence[DefectDecision]) -> None:
    """Raise :class:`MissingRepairDescription` for the first repaired defect without a note."""
    for index, decision in enumerate(decisions):
        if decision.repaired and not (decision.repair_description or "").strip():
            raise MissingRepairDescription(index)


def merge_decisions(
    stored: Sequence[RecordedDefect],
    decisions: Sequence[DefectDecision],
) -> List[RecordedDefect]:
    """Attach repair outcomes to the stored defects, position by position.

    The stored defect stays authoritative for category, description,
    severity and location.
    """
    merged: List[RecordedDefect] = []
    for defect, decision in zip(stored, decisions):
        merged.append(
            defect.model_copy(
                update={
                    "severity": effective_severity(defect),
                    "repaired": decision.repaired,
                    "repair_description": (decision.repair_description or "").strip() or None,
                }
            )
        )
    return merged


def intervention_priority(defects: Sequence[RecordedDefect]) -> str:
    worst = max((effective_severity(d).rank for d in defects), default=0)
    if worst >= Severity.CRITICAL.rank:
        return "critical"
    if worst >= Severity.WARNING.rank:
        return "high"
    return "medium"


def build_intervention(
    inspection: Inspection,
    unrepaired: Sequence[RecordedDefect],
) -> Optional[InterventionDraft]:
    """One aggregate intervention for all unrepaired defects, or ``None``."""
    if not unrepaired:
        return None
    lines = [
        f"{n}. [{effective_severity(d).value.upper()}] {d.category}: {d.description} ({d.location})"
        for n, d in enumerate(unrepaired, start=1)
    ]
    description = "Defects reported during inspection:\n" + "\n".join(lines)
    return InterventionDraft(
        vehicle_id=inspection.vehicle_id,
        inspection_id=inspection.id,
        description=description,
        priority=intervention_priority(unrepaired),
    )


def review_notes(total: int, to_repair: int) -> str:
    """Marker telling "no anomaly" apart from "anomaly present"."""
    if total == 0:
        return NOTES_NO_ANOMALY
    if to_repair == 0:
        return f"{NOTES_ALL_REPAIRED}: {total} defect(s) repaired"
    return f"{NOTES_WITH_INTERVENTION}: {to_repair} defect(s) to repair"


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class ValidationWorkflow:
    """Validates inspections against an injected repository.

    Parameters
    ----------
    repository :
        Where inspections and interventions live.
    notifier :
        Optional event sink for ``INSPECTION_WORK_COMPLETED``.
    clock :
        Returns "now" for ``reviewed_at``; UTC wall clock by default.
    access_policy :
        Decides who may validate; :class:`RoleAccessPolicy` by default.
    """

    def __init__(
        self,
        repository: InspectionRepository,
        *,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
        access_policy: Optional[RoleAccessPolicy] = None,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._clock = clock or _utcnow
        self._access_policy = access_policy or RoleAccessPolicy()

    def validate(self, request: ValidationRequest, reviewer: Reviewer) -> ValidationResult:
        inspection_id = request.inspection_id
        log = logger.bind(inspection_id=inspection_id, reviewer=reviewer.user_id)

        if not self._access_policy.can_validate(reviewer):
            log.warning("validation_unauthorized", role=reviewer.role)
            raise Unauthorized(
                f"Role '{reviewer.role}' is not allowed to validate inspections",
                inspection_id=inspection_id,
            )

        inspection = self._repository.get(inspection_id)
        if inspection is None:
            raise InspectionNotFound(
                f"Inspection {inspection_id} not found", inspection_id=inspection_id
            )
        self._check_validatable(inspection, request)

        decisions = list(request.defects)
        if len(decisions) != len(inspection.defects):
            raise DecisionCountMismatch(
                len(inspection.defects), len(decisions), inspection_id=inspection_id
            )
        try:
            check_repair_notes(decisions)
        except MissingRepairDescription as exc:
            exc.inspection_id = inspection_id
            log.info("validation_rejected", reason=exc.code, defect_index=exc.defect_index)
            raise

        recorded = merge_decisions(inspection.defects, decisions)
        unrepaired = [d for d in recorded if not d.repaired]
        draft = build_intervention(inspection, unrepaired)
        notes = review_notes(len(recorded), len(unrepaired))

        commit = ValidationCommit(
            inspection_id=inspection_id,
            reviewed_by=reviewer.user_id,
            reviewed_at=self._clock(),
            review_notes=notes,
            defects=recorded,
            intervention=draft,
        )
        try:
            intervention_id = self._repository.commit_validation(commit)
        except AlreadyValidated:
            log.warning("validation_conflict")
            raise
        except WorkflowError:
            log.error("validation_write_failed", exc_info=True)
            raise
        except Exception as exc:
            log.error("validation_write_failed", error=str(exc), exc_info=True)
            raise DownstreamWriteFailure(
                f"Failed to persist validation: {exc}", inspection_id=inspection_id
            ) from exc

        log.info(
            "inspection_validated",
            repaired=len(recorded) - len(unrepaired),
            to_repair=len(unrepaired),
            intervention_id=intervention_id,
        )

        self._notify(
            InspectionWorkCompleted(
                inspection_id=inspection_id,
                has_anomalies=len(recorded) > 0,
                anomalies_count=len(recorded),
            )
        )

        return ValidationResult(
            inspection_id=inspection_id,
            status=InspectionStatus.VALIDATED,
            intervention_created=intervention_id is not None,
            intervention_id=intervention_id,
            repaired_count=len(recorded) - len(unrepaired),
            to_repair_count=len(unrepaired),
            review_notes=notes,
        )

    # -- internal -----------------------------------------------------------

    @staticmethod
    def _check_validatable(inspection: Inspection, request: ValidationRequest) -> None:
        if inspection.status == InspectionStatus.VALIDATED:
            raise AlreadyValidated(
                "Inspection has already been validated", inspection_id=inspection.id
            )
        if inspection.status not in AWAITING_VALIDATION:
            raise NotValidatable(
                f"Inspection cannot be validated (status: {inspection.status.value})",
                inspection_id=inspection.id,
            )
        if request.vehicle_id != inspection.vehicle_id:
            raise NotValidatable(
                "Inspection does not belong to the given vehicle", inspection_id=inspection.id
            )

    def _notify(self, event: InspectionWorkCompleted) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(event)
        except Exception:
            logger.warning(
                "notification_failed", inspection_id=event.inspection_id, exc_info=True
            )
