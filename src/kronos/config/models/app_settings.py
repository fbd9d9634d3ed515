"""Application and logging configuration models.

This module contains configuration models for application-level
settings and logging configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from kronos.shared.constants import Application, Logging


class AppSettings(BaseModel):
    """Application configuration.

    This class manages application-level settings including
    name, version and debug mode.
    """

    name: str = Field(default=Application.NAME, description="Application name")
    version: str = Field(default=Application.VERSION, description="Application version")
    description: str = Field(
        default=Application.DESCRIPTION,
        description="Application description",
    )
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration.

    This class manages logging behavior including level, file output,
    and console rendering.
    """

    level: str = Field(default=Logging.DEFAULT_LEVEL, description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    rich_console: bool = Field(
        default=True,
        description="Render console logs with rich instead of JSON lines",
    )


__all__ = [
    "AppSettings",
    "LoggingSettings",
]
