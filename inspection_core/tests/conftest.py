"""Shared pytest fixtures for inspection_core tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator

import pytest

from inspection_core.workflow import InMemoryInspectionRepository


@pytest.fixture(autouse=True)
def _reset_rule_cache() -> Generator[None, None, None]:
    """Clear the default rule table cache between tests.

    Prevents a test that loads a custom table from leaking into others.
    """
    from inspection_core import defect_classifier

    defect_classifier._default_table = None
    yield
    defect_classifier._default_table = None


@pytest.fixture()
def fixed_now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def repository() -> InMemoryInspectionRepository:
    counter = iter(range(1, 1000))
    return InMemoryInspectionRepository(id_factory=lambda: f"INT-{next(counter):03d}")
