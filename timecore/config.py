from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TIMECORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Overtime defaults used when no overtime policy applies.
    default_daily_overtime_threshold: Decimal = Decimal("8")
    default_weekly_overtime_threshold: Decimal = Decimal("40")
    default_overtime_multiplier: Decimal = Decimal("1.5")
    default_double_time_threshold: Decimal | None = Decimal("12")
    default_double_time_multiplier: Decimal | None = Decimal("2.0")

    max_entry_hours: int = 24
    hours_per_day: Decimal = Decimal("8")
    past_request_tolerance_days: int = 1
    adjacency_days: int = 1
    expected_leave_types: list[str] = ["VACATION", "SICK", "PERSONAL"]


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
