"""
Logging Configuration.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .levels import LogLevel


class LogFormat(str, Enum):
    CONSOLE = "console"
    TECHNICAL = "technical"
    SIMPLE = "simple"
    JSON = "json"


class LoggingSettings(BaseSettings):
    """Logging infrastructure configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POLYLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: LogLevel = Field(default=LogLevel.INFO, description="Least severe level delivered by the root logger")
    sinks: str = Field(default="console", description="Comma-separated sink names (console, file)")
    format: LogFormat = Field(default=LogFormat.CONSOLE, description="Output format of the console sink")
    file_path: str = Field(default="logs/polylog.log", description="Path for file sink")
    file_format: LogFormat = Field(default=LogFormat.TECHNICAL, description="Output format of the file sink")
    file_max_bytes: int | None = Field(default=None, description="Rotate the log file beyond this size")
    file_backup_count: int = Field(default=5, description="Number of rotated log files kept")
    default_fields: dict[str, Any] = Field(default_factory=dict, description="Fields added to every message")
    intercept_stdlib: bool = Field(default=False, description="Route stdlib logging into the root logger")

    @field_validator("level", "format", "file_format", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def sink_names(self) -> list[str]:
        return [s.strip().lower() for s in self.sinks.split(",") if s.strip()]
