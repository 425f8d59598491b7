from pydantic import model_validator
from pydantic_settings import BaseSettings

from hardlevel.schemas.config import AnalyticsConfig, GamificationConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "HardLevel"
    version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Database (SQLite for local use, PostgreSQL in production)
    database_url: str = "sqlite+aiosqlite:///./hardlevel.db"

    # Export
    export_directory: str = "./exports"
    export_concurrency: int = 4  # parallel user fetches in batch exports

    # Leaderboard
    leaderboard_limit: int = 100

    # XP tuning
    perfect_day_bonus: int = 10
    max_daily_xp: int = 200

    # Analytics tuning
    moving_average_window: int = 3
    trend_stability_threshold: float = 5.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HARDLEVEL_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would make the engine misbehave silently."""
        for name in ("export_concurrency", "leaderboard_limit", "max_daily_xp", "moving_average_window"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be a positive integer")
        return self

    def gamification_config(self) -> GamificationConfig:
        """Build the immutable XP/level configuration from these settings."""
        return GamificationConfig(
            perfect_day_bonus=self.perfect_day_bonus,
            max_daily_xp=self.max_daily_xp,
        )

    def analytics_config(self) -> AnalyticsConfig:
        """Build the immutable analytics configuration from these settings."""
        return AnalyticsConfig(
            moving_average_window=self.moving_average_window,
            trend_stability_threshold=self.trend_stability_threshold,
        )


settings = Settings()
