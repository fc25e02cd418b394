"""Core configuration for the engine."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from actionflow.core.logging import configure_logging


class StoreConfig(BaseSettings):
    """Configuration for the backing key-value store."""

    backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Key-value store backend to use",
    )
    sqlite_path: Path = Field(
        default=Path(".state/actionflow.db"),
        description="Database file for the sqlite backend",
    )
    sqlite_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="How long a sqlite connection waits on a locked database",
    )

    model_config = SettingsConfigDict(
        env_prefix="ACTIONFLOW_STORE_",
        env_file=".env",
        extra="ignore",
    )


class EngineConfig(BaseSettings):
    """Main configuration for the engine."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    heap_max_workers: int = Field(
        default=8,
        gt=0,
        description="Worker threads used to read action outputs for a heap snapshot",
    )

    store: StoreConfig = Field(
        default_factory=StoreConfig,
        description="Store configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="ACTIONFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level)

        if self.debug:
            logging.getLogger("actionflow").setLevel(logging.DEBUG)
