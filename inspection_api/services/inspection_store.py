"""SQLAlchemy-backed inspection repository.

Validation runs as one transaction: the intervention insert and the
conditional status update are committed together or rolled back
together.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inspection_api import crud
from inspection_core.schemas import Inspection
from inspection_core.workflow.base import InspectionRepository, ValidationCommit
from inspection_core.workflow.errors import AlreadyValidated, DownstreamWriteFailure

logger = structlog.get_logger(__name__)


class SqlAlchemyInspectionRepository(InspectionRepository):
    """Repository over one request-scoped ``Session``."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, inspection_id: str) -> Optional[Inspection]:
        row = crud.get_inspection(self._db, inspection_id)
        return crud.to_domain(row) if row is not None else None

    def add(self, inspection: Inspection) -> Inspection:
        try:
            row = crud.create_inspection(self._db, inspection)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.error("inspection_insert_failed", inspection_id=inspection.id, error=str(exc))
            raise DownstreamWriteFailure(
                f"Failed to store inspection: {exc}", inspection_id=inspection.id
            ) from exc
        self._db.refresh(row)
        return crud.to_domain(row)

    def list_for_vehicle(
        self,
        vehicle_id: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Inspection]:
        rows = crud.list_inspections(self._db, vehicle_id, since=since, limit=limit, offset=offset)
        return [crud.to_domain(r) for r in rows]

    def commit_validation(self, commit: ValidationCommit) -> Optional[str]:
        try:
            intervention_id: Optional[str] = None
            if commit.intervention is not None:
                intervention_id = crud.create_intervention(self._db, commit.intervention).id

            updated = crud.mark_validated(self._db, commit, intervention_id)
            if updated == 0:
                self._db.rollback()
                raise AlreadyValidated(
                    "Inspection is no longer awaiting validation",
                    inspection_id=commit.inspection_id,
                )
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise DownstreamWriteFailure(
                f"Failed to persist validation: {exc}", inspection_id=commit.inspection_id
            ) from exc

        return intervention_id
