"""Configuration management using Pydantic Settings"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from finance_engine.domain.budget import ESSENTIAL_CATEGORY_PATTERNS


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "finance-engine"
    log_level: str = "INFO"

    # Budget rebalancing: categories matching any pattern are never reduced
    protected_categories: List[str] = Field(default_factory=lambda: list(ESSENTIAL_CATEGORY_PATTERNS))

    # Health score: False keeps the savings bonus chain exclusive (+5 caps it)
    stack_savings_bonuses: bool = False

    # Custom month cycle (6th of this month to 5th of next)
    default_cycle_start_day: int = 6


settings = Settings()
