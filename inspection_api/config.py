"""Configuration module for the inspection API."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Secrets (database password, webhook URL) come from the environment
    or a local ``.env`` file, never from the codebase.
    """

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}

    # API Metadata
    app_name: str = "Fleet Inspection API"
    app_version: str = "0.1.0"
    debug_mode: bool = False

    # Database Configuration
    db_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the db_* parts when set",
    )
    db_host: str = "postgres"
    db_port: int = 5432
    db_name: str = "fleet_inspections"
    db_user: str = "fleet_app_user"
    db_password: str = ""
    db_pool_size: int = Field(default=5, ge=1)

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Validation workflow
    validator_roles: str = Field(
        default="admin,agent_parc,exploitation",
        description="Comma-separated roles allowed to validate inspections",
    )
    predictive_window_days: int = Field(default=180, ge=1)

    # Notifications
    notify_webhook_url: Optional[str] = None
    notify_max_retries: int = Field(default=3, ge=1)
    notify_timeout_seconds: float = Field(default=5.0, gt=0)

    # CORS
    cors_origins: str = "http://127.0.0.1:3000,http://localhost:3000"

    @property
    def database_url(self) -> str:
        """Construct database connection URL.

        Returns:
            Database connection string for SQLAlchemy.
        """
        if self.db_url:
            return self.db_url
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def validator_role_list(self) -> List[str]:
        return [r.strip() for r in self.validator_roles.split(",") if r.strip()]

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()
