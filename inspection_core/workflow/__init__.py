"""Inspection validation workflow."""

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
from inspection_core.workflow.memory_store import InMemoryInspectionRepository
from inspection_core.workflow.orchestrator import (
    DEFAULT_VALIDATOR_ROLES,
    VALIDATE_INSPECTION,
    RoleAccessPolicy,
    ValidationWorkflow,
)

__all__ = [
    "AlreadyValidated",
    "DEFAULT_VALIDATOR_ROLES",
    "DecisionCountMismatch",
    "DownstreamWriteFailure",
    "InMemoryInspectionRepository",
    "InspectionNotFound",
    "InspectionRepository",
    "MissingRepairDescription",
    "NotValidatable",
    "Notifier",
    "RoleAccessPolicy",
    "Unauthorized",
    "VALIDATE_INSPECTION",
    "ValidationCommit",
    "ValidationWorkflow",
    "WorkflowError",
]
