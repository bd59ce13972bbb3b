"""Environment-driven settings for ormkit.

``OrmSettings`` reads ``ORMKIT_*`` environment variables (and a ``.env``
file) once, validated by pydantic.  It is a plain value: build it where
the application starts and hand it to ``connect(settings=...)``.  Nothing
caches it process-wide, so two settings objects never interfere.

Examples:
    >>> import os
    >>> os.environ["ORMKIT_DATABASE_URL"] = "postgres://app@localhost/app"
    >>> settings = OrmSettings()
    >>> settings.driver_options()
    DriverOptions(debug=False, pool=False, connect_timeout=None)

Tags:
    settings, configuration, pydantic, environment, ormkit
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ormkit.core.drivers.types import DriverOptions
from ormkit.core.logging import configure_logging


class OrmSettings(BaseSettings):
    """ormkit configuration.

    Fields
    ──────
    database_url    : Default connection URL for ``connect()``
    debug           : Emit constructed queries on the debug side channel
    pool            : Open a connection pool (relational stores)
    connect_timeout : Seconds to wait while connecting
    log_level       : structlog log level
    log_format      : ``json``, ``console`` or ``auto`` (JSON unless a TTY)
    """

    model_config = SettingsConfigDict(
        env_prefix="ORMKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    database_url: str | None = Field(default=None)
    pool: bool = Field(default=False)
    connect_timeout: float | None = Field(default=None, gt=0)

    # ── Observability ────────────────────────────────────────────
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console", "auto"] = Field(default="auto")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    def driver_options(self) -> DriverOptions:
        """DriverOptions carrying this configuration's defaults."""
        return DriverOptions(
            debug=self.debug,
            pool=self.pool,
            connect_timeout=self.connect_timeout,
        )

    def configure_logging(self, service: str = "ormkit") -> None:
        """Apply ``log_level``/``log_format`` to structlog."""
        json_format = {"json": True, "console": False, "auto": None}[self.log_format]
        configure_logging(level=self.log_level, json_format=json_format, service=service)


__all__ = [
    "OrmSettings",
]
