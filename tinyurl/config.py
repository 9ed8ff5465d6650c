"""Configuration management for the tinyurl service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram: get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1: Import**::
    from tinyurl.config import get_settings

**Step 2: Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3: Pick the identifier strategy for the deployment**::
    ID_STRATEGY=snowflake WORKER_ID=3 DATACENTER_ID=1 uvicorn tinyurl.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- WORKER_ID / DATACENTER_ID are range-checked again by the generator at startup.
- One identifier strategy per deployment; never mix them over the same table.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from tinyurl.enums import IdStrategy


class Settings(BaseSettings):
    APP_NAME: str = "tinyurl"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://tinyurl:tinyurl@db:5432/tinyurl"

    # Redis read-through cache for resolved records
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_TTL_SECONDS: int = 3600

    # Identifier assignment
    ID_STRATEGY: IdStrategy = IdStrategy.SNOWFLAKE
    SNOWFLAKE_EPOCH_MS: int = 1594720861895
    WORKER_ID: int = 0
    DATACENTER_ID: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
