"""Tests for the validation workflow and the in-memory repository."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from inspection_core.schemas import (
    DefectDecision,
    Inspection,
    InspectionStatus,
    InspectionWorkCompleted,
    RecordedDefect,
    Reviewer,
    Severity,
    ValidationRequest,
)
from inspection_core.workflow import (
    AlreadyValidated,
    DecisionCountMismatch,
    DownstreamWriteFailure,
    InMemoryInspectionRepository,
    InspectionNotFound,
    MissingRepairDescription,
    NotValidatable,
    Notifier,
    RoleAccessPolicy,
    Unauthorized,
    ValidationWorkflow,
)
from inspection_core.workflow.orchestrator import (
    build_intervention,
    intervention_priority,
    review_notes,
)

_REVIEWED_AT = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_defects() -> List[RecordedDefect]:
    return [
        RecordedDefect(
            category="mechanical",
            description="Frein cassé",
            severity=Severity.CRITICAL,
            location="Front axle",
        ),
        RecordedDefect(
            category="body",
            description="Petite rayure sur la porte",
            severity=Severity.MINOR,
            location="Left door",
        ),
    ]


def _make_inspection(
    *,
    inspection_id: str = "INSP-1",
    status: InspectionStatus = InspectionStatus.REQUIRES_ACTION,
    defects: Optional[List[RecordedDefect]] = None,
) -> Inspection:
    return Inspection(
        id=inspection_id,
        vehicle_id="V-1",
        created_at=datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc),
        mileage=120_000,
        status=status,
        defects=_make_defects() if defects is None else defects,
    )


def _make_request(
    decisions: List[dict],
    *,
    inspection_id: str = "INSP-1",
    vehicle_id: str = "V-1",
) -> ValidationRequest:
    return ValidationRequest(
        inspection_id=inspection_id,
        vehicle_id=vehicle_id,
        defects=[DefectDecision.model_validate(d) for d in decisions],
    )


def _decision(repaired: bool, note: str = "", category: str = "mechanical") -> dict:
    return {"category": category, "repaired": repaired, "repairDescription": note}


_REVIEWER = Reviewer(user_id="U-7", role="agent_parc")


class _RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: List[InspectionWorkCompleted] = []

    def notify(self, event: InspectionWorkCompleted) -> None:
        self.events.append(event)


@pytest.fixture()
def notifier() -> _RecordingNotifier:
    return _RecordingNotifier()


@pytest.fixture()
def workflow(repository: InMemoryInspectionRepository, notifier: _RecordingNotifier) -> ValidationWorkflow:
    return ValidationWorkflow(repository, notifier=notifier, clock=lambda: _REVIEWED_AT)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_review_notes_markers(self) -> None:
        assert review_notes(0, 0) == "VALIDATED_NO_ANOMALY"
        assert review_notes(2, 0) == "VALIDATED_ALL_REPAIRED: 2 defect(s) repaired"
        assert review_notes(3, 1) == "VALIDATED_WITH_INTERVENTION: 1 defect(s) to repair"

    def test_no_anomaly_token_only_when_empty(self) -> None:
        assert "NO_ANOMALY" not in review_notes(1, 0)
        assert "NO_ANOMALY" not in review_notes(1, 1)

    def test_priority_from_worst_severity(self) -> None:
        defects = _make_defects()
        assert intervention_priority(defects) == "critical"
        assert intervention_priority(defects[1:]) == "medium"
        warning = [RecordedDefect(category="x", severity=Severity.WARNING)]
        assert intervention_priority(warning) == "high"

    def test_intervention_description_lines(self) -> None:
        draft = build_intervention(_make_inspection(), _make_defects())
        assert draft is not None
        lines = draft.description.splitlines()
        assert len(lines) == 3
        assert lines[1] == "1. [CRITICAL] mechanical: Frein cassé (Front axle)"
        assert lines[2] == "2. [MINOR] body: Petite rayure sur la porte (Left door)"
        assert draft.status == "pending"

    def test_no_unrepaired_no_draft(self) -> None:
        assert build_intervention(_make_inspection(), []) is None


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


class TestValidate:
    def test_mixed_batch_creates_one_intervention(
        self,
        workflow: ValidationWorkflow,
        repository: InMemoryInspectionRepository,
        notifier: _RecordingNotifier,
    ) -> None:
        repository.add(_make_inspection())
        result = workflow.validate(
            _make_request([_decision(False), _decision(True, "Touched up", "body")]),
            _REVIEWER,
        )

        assert result.success is True
        assert result.status == InspectionStatus.VALIDATED
        assert result.intervention_created is True
        assert result.intervention_id == "INT-001"
        assert result.repaired_count == 1
        assert result.to_repair_count == 1

        interventions = repository.interventions()
        assert list(interventions) == ["INT-001"]
        draft = interventions["INT-001"]
        assert draft.priority == "critical"
        assert "Frein cassé" in draft.description
        assert "rayure" not in draft.description

        stored = repository.get("INSP-1")
        assert stored.status == InspectionStatus.VALIDATED
        assert stored.reviewed_by == "U-7"
        assert stored.reviewed_at == _REVIEWED_AT
        assert stored.intervention_id == "INT-001"
        assert stored.review_notes.startswith("VALIDATED_WITH_INTERVENTION")
        assert [d.repaired for d in stored.defects] == [False, True]
        assert stored.defects[1].repair_description == "Touched up"
        # Stored defect fields stay authoritative.
        assert stored.defects[0].description == "Frein cassé"

        assert len(notifier.events) == 1
        assert notifier.events[0].has_anomalies is True
        assert notifier.events[0].anomalies_count == 2

    def test_all_repaired_creates_no_intervention(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        result = workflow.validate(
            _make_request([_decision(True, "New pads"), _decision(True, "Polished")]),
            _REVIEWER,
        )
        assert result.intervention_created is False
        assert result.intervention_id is None
        assert result.review_notes == "VALIDATED_ALL_REPAIRED: 2 defect(s) repaired"
        assert repository.interventions() == {}
        assert repository.get("INSP-1").status == InspectionStatus.VALIDATED

    def test_zero_defects_is_conformity_confirmation(
        self,
        workflow: ValidationWorkflow,
        repository: InMemoryInspectionRepository,
        notifier: _RecordingNotifier,
    ) -> None:
        repository.add(_make_inspection(status=InspectionStatus.PENDING_REVIEW, defects=[]))
        result = workflow.validate(_make_request([]), _REVIEWER)
        assert result.review_notes == "VALIDATED_NO_ANOMALY"
        assert result.intervention_created is False
        assert notifier.events[0].has_anomalies is False
        assert notifier.events[0].anomalies_count == 0

    def test_repair_note_is_trimmed(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        workflow.validate(
            _make_request([_decision(True, "  New pads  "), _decision(False)]), _REVIEWER
        )
        stored = repository.get("INSP-1")
        assert stored.defects[0].repair_description == "New pads"
        assert stored.defects[1].repair_description is None

    def test_missing_severity_classified_for_intervention(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        defects = [RecordedDefect(category="tires", description="Pneu crevé", location="RL")]
        repository.add(_make_inspection(defects=defects))
        result = workflow.validate(_make_request([_decision(False, category="tires")]), _REVIEWER)
        draft = repository.interventions()[result.intervention_id]
        assert "[CRITICAL] tires: Pneu crevé (RL)" in draft.description
        assert repository.get("INSP-1").defects[0].severity == Severity.CRITICAL

    def test_works_without_notifier(self, repository: InMemoryInspectionRepository) -> None:
        repository.add(_make_inspection(defects=[]))
        result = ValidationWorkflow(repository).validate(_make_request([]), _REVIEWER)
        assert result.success is True


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestRejections:
    def test_role_without_capability(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        with pytest.raises(Unauthorized):
            workflow.validate(
                _make_request([_decision(False), _decision(False)]),
                Reviewer(user_id="U-1", role="driver"),
            )
        assert repository.get("INSP-1").status == InspectionStatus.REQUIRES_ACTION

    def test_explicit_capability_granted(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection(defects=[]))
        reviewer = Reviewer(user_id="U-1", role="driver", capabilities=frozenset({"validate_inspection"}))
        assert workflow.validate(_make_request([]), reviewer).success is True

    def test_custom_roles(self, repository: InMemoryInspectionRepository) -> None:
        repository.add(_make_inspection(defects=[]))
        wf = ValidationWorkflow(repository, access_policy=RoleAccessPolicy(["fleet_manager"]))
        with pytest.raises(Unauthorized):
            wf.validate(_make_request([]), _REVIEWER)
        assert wf.validate(_make_request([]), Reviewer(user_id="U", role="Fleet_Manager")).success

    def test_not_found(self, workflow: ValidationWorkflow) -> None:
        with pytest.raises(InspectionNotFound):
            workflow.validate(_make_request([], inspection_id="nope"), _REVIEWER)

    def test_vehicle_mismatch(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        with pytest.raises(NotValidatable):
            workflow.validate(
                _make_request([_decision(False), _decision(False)], vehicle_id="V-2"),
                _REVIEWER,
            )

    def test_missing_repair_description_rejects_batch(
        self,
        workflow: ValidationWorkflow,
        repository: InMemoryInspectionRepository,
        notifier: _RecordingNotifier,
    ) -> None:
        repository.add(_make_inspection())
        with pytest.raises(MissingRepairDescription) as excinfo:
            workflow.validate(
                _make_request([_decision(False), _decision(True, "   ")]), _REVIEWER
            )
        assert excinfo.value.defect_index == 1
        assert excinfo.value.to_dict()["defect_index"] == 1
        assert "#2" in str(excinfo.value)

        stored = repository.get("INSP-1")
        assert stored.status == InspectionStatus.REQUIRES_ACTION
        assert stored.reviewed_by is None
        assert repository.interventions() == {}
        assert notifier.events == []

    def test_decision_count_mismatch(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        with pytest.raises(DecisionCountMismatch) as excinfo:
            workflow.validate(_make_request([_decision(False)]), _REVIEWER)
        assert excinfo.value.expected == 2
        assert excinfo.value.received == 1

    def test_revalidation_fails_without_second_intervention(
        self, workflow: ValidationWorkflow, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        request = _make_request([_decision(False), _decision(False)])
        workflow.validate(request, _REVIEWER)
        with pytest.raises(AlreadyValidated):
            workflow.validate(request, _REVIEWER)
        assert len(repository.interventions()) == 1


# ---------------------------------------------------------------------------
# Failures and concurrency
# ---------------------------------------------------------------------------


class TestFailures:
    def test_intervention_failure_leaves_inspection_untouched(self) -> None:
        def _boom() -> str:
            raise RuntimeError("maintenance service down")

        repository = InMemoryInspectionRepository(id_factory=_boom)
        repository.add(_make_inspection())
        workflow = ValidationWorkflow(repository)

        with pytest.raises(DownstreamWriteFailure):
            workflow.validate(_make_request([_decision(False), _decision(False)]), _REVIEWER)

        stored = repository.get("INSP-1")
        assert stored.status == InspectionStatus.REQUIRES_ACTION
        assert stored.intervention_id is None
        assert repository.interventions() == {}

    def test_unexpected_store_error_wrapped(self) -> None:
        repository = MagicMock()
        repository.get.return_value = _make_inspection(defects=[])
        repository.commit_validation.side_effect = OSError("disk full")
        workflow = ValidationWorkflow(repository)

        with pytest.raises(DownstreamWriteFailure) as excinfo:
            workflow.validate(_make_request([]), _REVIEWER)
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_notifier_failure_not_propagated(
        self, repository: InMemoryInspectionRepository
    ) -> None:
        failing = MagicMock(spec=Notifier)
        failing.notify.side_effect = RuntimeError("webhook down")
        repository.add(_make_inspection(defects=[]))
        workflow = ValidationWorkflow(repository, notifier=failing)

        result = workflow.validate(_make_request([]), _REVIEWER)
        assert result.success is True
        failing.notify.assert_called_once()
        assert repository.get("INSP-1").status == InspectionStatus.VALIDATED

    def test_concurrent_validation_single_winner(
        self, repository: InMemoryInspectionRepository
    ) -> None:
        repository.add(_make_inspection())
        workflow = ValidationWorkflow(repository)
        request = _make_request([_decision(False), _decision(False)])
        outcomes: List[str] = []
        barrier = threading.Barrier(8)

        def _run() -> None:
            barrier.wait()
            try:
                workflow.validate(request, _REVIEWER)
                outcomes.append("ok")
            except AlreadyValidated:
                outcomes.append("conflict")

        threads = [threading.Thread(target=_run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert len(repository.interventions()) == 1


class TestInMemoryRepository:
    def test_get_returns_copy(self, repository: InMemoryInspectionRepository) -> None:
        repository.add(_make_inspection())
        copy = repository.get("INSP-1")
        copy.defects.clear()
        assert len(repository.get("INSP-1").defects) == 2

    def test_list_for_vehicle_newest_first(self, repository: InMemoryInspectionRepository) -> None:
        for day in (1, 3, 2):
            repository.add(
                Inspection(
                    id=f"I-{day}",
                    vehicle_id="V-1",
                    created_at=datetime(2025, 6, day, tzinfo=timezone.utc),
                )
            )
        repository.add(Inspection(id="other", vehicle_id="V-2"))
        assert [i.id for i in repository.list_for_vehicle("V-1")] == ["I-3", "I-2", "I-1"]
        assert [i.id for i in repository.list_for_vehicle("V-1", limit=1, offset=1)] == ["I-2"]
        since = datetime(2025, 6, 2, tzinfo=timezone.utc)
        assert [i.id for i in repository.list_for_vehicle("V-1", since=since)] == ["I-3", "I-2"]
        assert repository.size() == 4
