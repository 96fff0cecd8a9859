"""Validation workflow errors.

Every error carries a stable ``code`` so the HTTP layer can map it to a
status without string matching.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for all validation workflow failures."""

    code = "workflow_error"

    def __init__(self, message: str, *, inspection_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.inspection_id = inspection_id

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.inspection_id is not None:
            body["inspection_id"] = self.inspection_id
        return body


class Unauthorized(WorkflowError):
    """Caller lacks the ``validate_inspection`` capability."""

    code = "unauthorized"


class InspectionNotFound(WorkflowError):
    code = "inspection_not_found"


class NotValidatable(WorkflowError):
    """Inspection is not in a state (or vehicle) that can be validated."""

    code = "not_validatable"


class AlreadyValidated(WorkflowError):
    """Inspection was validated before, possibly by a concurrent reviewer."""

    code = "already_validated"


class MissingRepairDescription(WorkflowError):
    """A defect marked repaired has no repair note; the batch is rejected."""

    code = "missing_repair_description"

    def __init__(self, defect_index: int, *, inspection_id: Optional[str] = None) -> None:
        super().__init__(
            f"A repair description is required for defect #{defect_index + 1}",
            inspection_id=inspection_id,
        )
        self.defect_index = defect_index

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["defect_index"] = self.defect_index
        return body


class DecisionCountMismatch(WorkflowError):
    """The submission does not carry exactly one decision per stored defect."""

    code = "decision_count_mismatch"

    def __init__(self, expected: int, received: int, *, inspection_id: Optional[str] = None) -> None:
        super().__init__(
            f"Expected {expected} defect decision(s), received {received}",
            inspection_id=inspection_id,
        )
        self.expected = expected
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["expected"] = self.expected
        body["received"] = self.received
        return body


class DownstreamWriteFailure(WorkflowError):
    """The data store or intervention creation failed; nothing was written."""

    code = "downstream_write_failure"
