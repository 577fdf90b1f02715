"""Runtime settings, read from ``FARMSALES_*`` environment variables or a
``.env`` file in the working directory."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    # Storage
    DATA_DIR: Path = _DEFAULT_DATA_DIR

    # Logging
    LOG_LEVEL: str = "INFO"

    # Sales
    CURRENCY: str = "USD"
    ORDER_NUMBER_ATTEMPTS: int = Field(default=10, ge=1)

    # Identity used by the command line tool
    OPERATOR_ID: str = "cli"
    OPERATOR_ROLE: str = "admin"
    OPERATOR_FARMS: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_prefix="FARMSALES_",
        env_file=".env",
        extra="ignore",
    )
