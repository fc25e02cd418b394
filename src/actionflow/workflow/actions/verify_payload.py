"""JSON Schema validation of a run's payload."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import Field

from actionflow.core.errors import BadRequestError, ConfigurationError
from actionflow.workflow.actions.base import Action
from actionflow.workflow.models import ActionConfiguration


class VerifyPayloadConfiguration(ActionConfiguration):
    json_schema: dict[str, Any] | bool = Field(alias="schema")


class VerifyPayload(Action):
    """Validate ``inputs["payload"]`` against the configured JSON Schema.

    The schema is checked when the graph is compiled, so a broken schema is a
    configuration error rather than a per-run failure. A payload that does
    not match raises :class:`BadRequestError`, which a failure edge may absorb.
    """

    config_model: ClassVar[type[ActionConfiguration]] = VerifyPayloadConfiguration
    config: VerifyPayloadConfiguration

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        try:
            Draft202012Validator.check_schema(self.config.json_schema)
        except SchemaError as e:
            raise ConfigurationError(
                f"[VerifyPayload] invalid schema: {e.message}",
                {"action_id": self.action_id},
            ) from e
        self._validator = Draft202012Validator(self.config.json_schema)

    def invoke(self, inputs: dict[str, Any]) -> Mapping[str, Any] | None:
        payload = inputs.get("payload")
        errors = sorted(
            self._validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path]
        )
        if errors:
            messages = [e.message for e in errors]
            raise BadRequestError(
                f"JSON input does not match schema: {'; '.join(messages)}",
                {"action_id": self.action_id, "errors": messages},
            )
        return {"validatedInput": payload}
