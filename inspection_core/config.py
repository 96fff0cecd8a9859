"""Core configuration via environment variables.

Uses pydantic-settings so every field can be overridden with an env
var prefixed ``INSPECTION_`` (e.g. ``INSPECTION_LOG_LEVEL``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class CoreSettings(BaseSettings):
    """Settings shared by the CLI and the notifier."""

    model_config = {"env_prefix": "INSPECTION_", "env_file": ".env", "extra": "ignore"}

    # -- logging ------------------------------------------------------------
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="console",
        description="Log output format: 'console' or 'json'",
    )

    # -- classifier ---------------------------------------------------------
    rules_path: Optional[Path] = Field(
        default=None,
        description="Override for the bundled classification_rules.yaml",
    )

    # -- notifications ------------------------------------------------------
    notify_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook receiving INSPECTION_WORK_COMPLETED events; unset = log only",
    )
    notify_max_retries: int = Field(default=3, ge=1, description="Max HTTP attempts per event")
    notify_timeout_seconds: float = Field(default=5.0, gt=0, description="Per-request timeout")
