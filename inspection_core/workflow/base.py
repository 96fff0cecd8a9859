"""Abstract collaborators injected into the validation workflow."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from inspection_core.schemas import (
    Inspection,
    InspectionWorkCompleted,
    InterventionDraft,
    RecordedDefect,
)


@dataclass(frozen=True)
class ValidationCommit:
    """Everything the repository writes when an inspection is validated."""

    inspection_id: str
    reviewed_by: str
    reviewed_at: datetime
    review_notes: str
    defects: List[RecordedDefect]
    intervention: Optional[InterventionDraft] = None


class InspectionRepository(ABC):
    """Data-store interface for inspections and interventions.

    Concrete implementations: ``InMemoryInspectionRepository`` (tests,
    CLI) and ``SqlAlchemyInspectionRepository`` (``inspection_api``).
    """

    @abstractmethod
    def get(self, inspection_id: str) -> Optional[Inspection]:
        """Return the inspection or ``None`` if it does not exist."""

    @abstractmethod
    def add(self, inspection: Inspection) -> Inspection:
        """Persist a newly submitted inspection."""

    @abstractmethod
    def list_for_vehicle(
        self,
        vehicle_id: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Inspection]:
        """Return a vehicle's inspections, newest first."""

    @abstractmethod
    def commit_validation(self, commit: ValidationCommit) -> Optional[str]:
        """Atomically create the intervention (if any) and validate.

        The status update must only apply while the inspection is still
        awaiting validation.  Returns the created intervention id, or
        ``None`` when ``commit.intervention`` is ``None``.

        Raises
        ------
        AlreadyValidated
            The conditional update matched no row; nothing was written.
        DownstreamWriteFailure
            The store failed; nothing was written.
        """


class Notifier(ABC):
    """Receives workflow events.  Must not block the caller for long."""

    @abstractmethod
    def notify(self, event: InspectionWorkCompleted) -> None:
        """Deliver *event*; failures are the implementation's to log."""
