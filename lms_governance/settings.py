from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo).
    - Every field can be overridden with an `LMS_`-prefixed env var.
    """

    model_config = SettingsConfigDict(env_prefix="LMS_", extra="ignore")

    db_url: str | None = None
    governance_config_path: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"

    audit_dead_letter_path: str | None = None
    audit_alert_webhook_url: str | None = None
    audit_alert_timeout_seconds: float = 5.0
    audit_owner_cross_tenant: bool = False
    audit_redacted_fields: list[str] = Field(default_factory=list)

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "lms_governance.db"
        return f"sqlite:///{db_path}"

    def resolved_governance_config_path(self) -> Path:
        if self.governance_config_path:
            return Path(self.governance_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "governance.yaml"

    def resolved_dead_letter_path(self) -> Path:
        if self.audit_dead_letter_path:
            return Path(self.audit_dead_letter_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "var" / "audit_dead_letter.jsonl"


@lru_cache
def get_settings() -> Settings:
    return Settings()
