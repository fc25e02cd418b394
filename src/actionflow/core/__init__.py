"""Core package initialization."""

from actionflow.core.config import EngineConfig, StoreConfig
from actionflow.core.errors import (
    ActionFlowError,
    BadRequestError,
    ConfigurationError,
    ErrorKind,
)

__all__ = [
    "ActionFlowError",
    "BadRequestError",
    "ConfigurationError",
    "EngineConfig",
    "ErrorKind",
    "StoreConfig",
]
