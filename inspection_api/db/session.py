"""Database session configuration.

The engine is created on first use so that importing the app (tests,
Alembic, the CLI) never needs a reachable database.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from inspection_api.config import settings

# Session factory, bound to the engine by get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        url = settings.database_url
        kwargs = {"pool_pre_ping": True}
        if not url.startswith("sqlite"):
            kwargs.update(pool_size=settings.db_pool_size, max_overflow=10)
        _engine = create_engine(url, **kwargs)
        SessionLocal.configure(bind=_engine)
    return _engine
