"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for sheet-build settings.
- Load and validate environment variables from `.env` or OS environment.

Core Workflow:
1. Loader supplies MetricSeries + forecast overrides for one ticker.
2. Sheet builder lays out annual/quarterly tables and the valuation grid.
3. Grid is rendered to .xlsx (xlsxwriter) or read back (openpyxl).

This module does NOT:
- Read financial data.
- Touch any worksheet.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/stocksheet/core/config.py
# .env should be at: backend/.env
_CONFIG_DIR = Path(__file__).parent
_BACKEND_DIR = _CONFIG_DIR.parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    _ENV_FILE_PATH = str(_ENV_FILE.resolve())
else:
    # Fallback: use relative path (pydantic will look in CWD)
    _ENV_FILE_PATH = ".env"


class Settings(BaseSettings):
    """
    Settings container for sheet builds.

    CURRENT_YEAR pins the wall-clock year for reproducible builds; leave it
    unset to use the system clock.
    """
    LOG_LEVEL: str = Field(
        "INFO",
        description="Root log level for CLI scripts",
    )
    CURRENT_YEAR: Optional[int] = Field(
        None,
        description="Override for the wall-clock year used to classify periods",
    )
    DEFAULT_PE: float = Field(
        10.0,
        description="Fallback P/E when no prior-year annual P/E is available",
    )
    EXPORT_DIR: str = Field(
        "outputs",
        description="Directory for exported workbooks",
    )
    SHEET_NAME: str = Field(
        "Screening",
        description="Worksheet name used when rendering .xlsx files",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Strip whitespace and upper-case the level name."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v or "INFO"

    @field_validator("CURRENT_YEAR", mode="before")
    @classmethod
    def blank_year_is_unset(cls, v: Any) -> Any:
        """Treat an empty CURRENT_YEAR= line in .env as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("DEFAULT_PE")
    @classmethod
    def positive_default_pe(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("DEFAULT_PE must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Single settings instance shared by every importer
settings = Settings()
