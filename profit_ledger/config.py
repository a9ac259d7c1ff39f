"""
Configuration management for the Profit Ledger engine
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Profit Ledger"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    database_url: str = "sqlite:///./profit_ledger.db"

    # Trigger auth (Bearer header, raw header or ?token=). Empty = open.
    cron_secret: Optional[str] = None

    # Engine
    max_lookback_days: int = 60  # Default runs never reach further back than this
    default_window_days: int = 30  # Rolling window when no start/end given
    fallback_gross_margin: float = 0.5  # Used when a client has no margin configured

    # Cost mode classification (diagnostic only)
    cost_mode_actual_threshold: float = 0.95
    cost_mode_hybrid_threshold: float = 0.25

    # Attribution windows offered to the dashboard (days)
    attribution_windows: List[int] = [1, 3, 7, 14]
    max_attribution_window_days: int = 14

    # Scheduler
    enable_scheduler: bool = True
    rollup_schedule: str = "15 3 * * *"  # Daily at 03:15
    scheduler_timezone: str = "UTC"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
