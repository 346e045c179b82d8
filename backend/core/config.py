"""
ShelfSignal Configuration

Uses pydantic-settings for type-safe environment variable loading.
Business policy knobs (operating expense ratio, demand jitter) live here so
they can be tuned per deployment without touching the engines.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = Path(__file__).resolve().parent.parent.parent / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "ShelfSignal"
    app_version: str = "1.0.0"
    app_env: str = "local"
    debug: bool = False

    # Database (reference repositories only; engines never touch it)
    database_url: str = "sqlite+aiosqlite:///./shelfsignal.db"
    database_echo: bool = False

    # ── Revenue Analytics ────────────────────────────────────────────
    operating_expense_ratio: float = 0.15
    top_products_limit: int = 20
    seasonal_months: int = 12

    # ── Inventory Forecasting ────────────────────────────────────────
    demand_jitter_min: float = 0.8
    demand_jitter_max: float = 1.2
    forecast_days: int = 30

    # ── Transaction log ──────────────────────────────────────────────
    transaction_log_limit: int = 10_000

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    _enforce_policy_guardrails(settings)
    return settings


def _enforce_policy_guardrails(settings: Settings) -> None:
    if not 0 <= settings.operating_expense_ratio < 1:
        raise ValueError(
            f"operating_expense_ratio must be in [0, 1), got {settings.operating_expense_ratio}"
        )
    if settings.demand_jitter_min < 0 or settings.demand_jitter_min > settings.demand_jitter_max:
        raise ValueError(
            "demand jitter must satisfy 0 <= demand_jitter_min <= demand_jitter_max, "
            f"got ({settings.demand_jitter_min}, {settings.demand_jitter_max})"
        )
    if settings.forecast_days < 0:
        raise ValueError(f"forecast_days must be non-negative, got {settings.forecast_days}")
    if settings.transaction_log_limit < 1:
        raise ValueError(f"transaction_log_limit must be positive, got {settings.transaction_log_limit}")
