"""Application configuration using Pydantic Settings."""

from pathlib import Path

import pytz
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """SQLite database settings."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    path: str = "data/church_bms.db"
    timeout: float = 5.0

    def ensure_dirs(self) -> None:
        """Create the database directory if needed."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)


class ServerSettings(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]


class RegistrySettings(BaseSettings):
    """Business rules for families and believers."""

    model_config = SettingsConfigDict(env_prefix="REGISTRY_")

    timezone: str = "Asia/Kolkata"
    family_code_prefix: str = "FAM"
    family_code_width: int = 4
    # "counter": atomic counter row, "count": number of non-deleted families + 1
    family_code_strategy: str = "counter"
    # "all": restore every trashed member, "cascade": only those trashed with the family
    restore_scope: str = "all"
    reminder_days: int = 7
    page_size: int = 20
    max_page_size: int = 100

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("family_code_strategy")
    @classmethod
    def _known_strategy(cls, value: str) -> str:
        if value not in ("counter", "count"):
            raise ValueError("family_code_strategy must be 'counter' or 'count'")
        return value

    @field_validator("restore_scope")
    @classmethod
    def _known_scope(cls, value: str) -> str:
        if value not in ("all", "cascade"):
            raise ValueError("restore_scope must be 'all' or 'cascade'")
        return value


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"

    database: DatabaseSettings = DatabaseSettings()
    server: ServerSettings = ServerSettings()
    registry: RegistrySettings = RegistrySettings()


settings = Settings()
