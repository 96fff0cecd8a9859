"""FastAPI dependencies shared by the v1 endpoints."""

from functools import lru_cache
from typing import Generator, Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from inspection_api.config import settings
from inspection_api.db.session import SessionLocal, get_engine
from inspection_api.services.inspection_store import SqlAlchemyInspectionRepository
from inspection_core.config import CoreSettings
from inspection_core.notifier import HttpNotifier, build_notifier
from inspection_core.schemas import InspectionWorkCompleted, Reviewer
from inspection_core.workflow import (
    InspectionRepository,
    Notifier,
    RoleAccessPolicy,
    ValidationWorkflow,
)


def get_db() -> Generator[Session, None, None]:
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> InspectionRepository:
    return SqlAlchemyInspectionRepository(db)


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    """Process-wide notifier built from settings."""
    return build_notifier(
        CoreSettings(
            notify_webhook_url=settings.notify_webhook_url,
            notify_max_retries=settings.notify_max_retries,
            notify_timeout_seconds=settings.notify_timeout_seconds,
        )
    )


def close_notifier() -> None:
    """Release the cached webhook client, if one was built."""
    if get_notifier.cache_info().currsize:
        notifier = get_notifier()
        if isinstance(notifier, HttpNotifier):
            notifier.close()
    get_notifier.cache_clear()


class BackgroundNotifier(Notifier):
    """Defers delivery until after the response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, inner: Notifier) -> None:
        self._background_tasks = background_tasks
        self._inner = inner

    def notify(self, event: InspectionWorkCompleted) -> None:
        self._background_tasks.add_task(self._inner.notify, event)


def get_reviewer(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    x_user_capabilities: Optional[str] = Header(default=None),
) -> Reviewer:
    """Identity as forwarded by the upstream auth gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    capabilities = frozenset(
        c.strip() for c in (x_user_capabilities or "").split(",") if c.strip()
    )
    return Reviewer(user_id=x_user_id.strip(), role=x_user_role, capabilities=capabilities)


def get_workflow(
    background_tasks: BackgroundTasks,
    repository: InspectionRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> ValidationWorkflow:
    return ValidationWorkflow(
        repository,
        notifier=BackgroundNotifier(background_tasks, notifier),
        access_policy=RoleAccessPolicy(settings.validator_role_list),
    )
