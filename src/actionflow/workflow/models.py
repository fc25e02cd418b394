"""Configuration tree, input-source grammar and run context.

An application is configured as a nested tree::

    {
        "type": "TestAction",
        "config": {"actionId": "a1", "inputSources": {"x": "GLOBAL:user"}},
        "onSuccess": {...},
        "onFailure": {...},
    }

Input sources are colon-delimited expressions:

- ``GLOBAL:<name>``: a value from the run's global context.
- ``GET:<actionId>:<field>``: a field of another action's persisted output.
- anything else: a literal.

Colons cannot be escaped; names containing ``:`` are unsupported.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from actionflow.core.errors import ConfigurationError, InvalidInputSourceError
from actionflow.state.gateway import Identity

GLOBAL_PREFIX = "GLOBAL"
GET_PREFIX = "GET"


class SourceKind(str, Enum):
    GLOBAL = "global"
    GET = "get"
    LITERAL = "literal"


@dataclass(frozen=True, slots=True)
class InputSource:
    kind: SourceKind
    expression: str
    name: str | None = None
    action_id: str | None = None

    @property
    def reference(self) -> str:
        return f"{self.action_id}:{self.name}"


def parse_input_source(expression: str) -> InputSource:
    tokens = expression.split(":")
    head = tokens[0]

    if head == GLOBAL_PREFIX:
        if len(tokens) != 2 or not tokens[1]:
            raise InvalidInputSourceError(
                f"Malformed input source {expression!r}; expected GLOBAL:<name>",
                {"expression": expression},
            )
        return InputSource(kind=SourceKind.GLOBAL, expression=expression, name=tokens[1])

    if head == GET_PREFIX:
        if len(tokens) != 3 or not tokens[1] or not tokens[2]:
            raise InvalidInputSourceError(
                f"Malformed input source {expression!r}; expected GET:<actionId>:<field>",
                {"expression": expression},
            )
        return InputSource(
            kind=SourceKind.GET, expression=expression, action_id=tokens[1], name=tokens[2]
        )

    return InputSource(kind=SourceKind.LITERAL, expression=expression)


class ActionConfiguration(BaseModel):
    """Configuration shared by every action type.

    Action types that need more settings subclass this; unknown keys are kept
    so the subclass can validate them.
    """

    action_id: str = Field(alias="actionId", min_length=1)
    input_sources: dict[str, str] = Field(default_factory=dict, alias="inputSources")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("action_id")
    @classmethod
    def _no_colons(cls, value: str) -> str:
        if ":" in value:
            raise ValueError("actionId must not contain ':'")
        return value

    @field_validator("input_sources")
    @classmethod
    def _parse_sources(cls, value: dict[str, str]) -> dict[str, str]:
        for expression in value.values():
            parse_input_source(expression)
        return value

    def parsed_sources(self) -> dict[str, InputSource]:
        return {attr: parse_input_source(expr) for attr, expr in self.input_sources.items()}


class ApplicationConfiguration(BaseModel):
    """One node of the configuration tree and its success/failure sub-trees."""

    type: str
    config: ActionConfiguration
    on_success: ApplicationConfiguration | None = Field(default=None, alias="onSuccess")
    on_failure: ApplicationConfiguration | None = Field(default=None, alias="onFailure")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def parse_application_config(
    raw: Mapping[str, Any] | ApplicationConfiguration,
) -> ApplicationConfiguration:
    """Validate a raw configuration tree, raising ConfigurationError on bad input."""

    if isinstance(raw, ApplicationConfiguration):
        return raw
    try:
        return ApplicationConfiguration.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid application configuration: {e.error_count()} error(s)",
            {"errors": e.errors(include_url=False)},
        ) from e


def load_application_config(path: Path) -> ApplicationConfiguration:
    """Read a JSON configuration tree from disk."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Unable to read application config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Application config {path} must be a JSON object")
    return parse_application_config(raw)


@dataclass(frozen=True, slots=True)
class RunContext:
    """Run-scoped values visible to ``GLOBAL:`` lookups. Never persisted."""

    identity: Identity
    payload: Mapping[str, Any] = field(default_factory=dict)

    def globals(self) -> dict[str, Any]:
        return {
            **self.payload,
            "application": {"id": self.identity.application_id},
            "user": {"id": self.identity.user_id},
        }
