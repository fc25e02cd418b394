"""actionflow.

A durable, resumable engine for chains of actions:
- application configuration compiled into an action graph
- per-identity position pointer and action state in a key-value store
- success/failure edges with resume-at-last-step semantics
"""

__version__ = "0.1.0"

from actionflow.core.config import EngineConfig
from actionflow.state.gateway import HeapSnapshot, Identity, PersistenceGateway
from actionflow.workflow.application import Application

__all__ = [
    "__version__",
    "Application",
    "EngineConfig",
    "HeapSnapshot",
    "Identity",
    "PersistenceGateway",
]
