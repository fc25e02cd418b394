"""Configuration for the REST server."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for the HTTP run surface.

    Store, logging and heap settings come from
    :class:`actionflow.core.config.EngineConfig`; this only adds what the
    server itself needs.
    """

    application_config_path: Path = Field(
        default=Path("application.json"),
        validation_alias="ACTIONFLOW_APPLICATION_CONFIG",
        description="JSON application configuration served by this process",
    )

    # Override via ACTIONFLOW_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="ACTIONFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
