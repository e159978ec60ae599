"""SubTrack — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    process_deferral_ms: int = 100  # Yield before an import-triggered pass

    # ── Reconciliation ──
    date_mismatch_days: int = 7
    low_roi_threshold: float = -80.0  # % ROI below which spend is flagged

    # ── Reporting ──
    report_schema_version: str = "1.0.0"
    account_currency: str = "THB"  # Platform-native, never converted

    @property
    def effective_database_url(self) -> str:
        """Return the configured URL, otherwise fall back to a local SQLite file."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/subtrack.db"
        return "sqlite:///./subtrack.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
