"""Kind-tagged errors raised by the engine and its actions.

Callers branch on :attr:`ActionFlowError.kind` rather than on the concrete
class:

- ``BAD_REQUEST``: the input given to a run (or to an action) was rejected.
- ``MISCONFIGURATION``: the application configuration or graph wiring is wrong.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    MISCONFIGURATION = "MISCONFIGURATION"


class ActionFlowError(Exception):
    """Base error carrying a kind and optional diagnostic info."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        diagnostic_info: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.diagnostic_info = diagnostic_info or {}

    def to_json(self) -> dict[str, object]:
        return {"kind": self.kind.value, "message": self.message}


class ConfigurationError(ActionFlowError):
    """The application configuration cannot be executed as written."""

    def __init__(self, message: str, diagnostic_info: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorKind.MISCONFIGURATION, message, diagnostic_info)


class BadRequestError(ActionFlowError):
    """Input supplied to an action failed validation."""

    def __init__(self, message: str, diagnostic_info: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorKind.BAD_REQUEST, message, diagnostic_info)


class UnknownActionTypeError(ConfigurationError):
    pass


class DuplicateActionIdError(ConfigurationError):
    pass


class InvalidInputSourceError(ConfigurationError):
    pass


class UnknownActionError(ConfigurationError):
    """An action id (from the pointer or a ``GET:`` lookup) is not in the graph."""

    def __init__(self, action_id: str) -> None:
        super().__init__(f"Unknown action id: {action_id!r}", {"action_id": action_id})
        self.action_id = action_id


class InputLookupError(ConfigurationError):
    """A ``GET:<actionId>:<field>`` source referenced an action with no output."""

    def __init__(self, action_id: str, field_name: str) -> None:
        super().__init__(
            f"Previous action var lookup failure. {action_id}:{field_name}",
            {"action_id": action_id, "field": field_name},
        )
        self.action_id = action_id
        self.field_name = field_name


class StoreError(Exception):
    """The backing key-value store failed to complete an operation."""
