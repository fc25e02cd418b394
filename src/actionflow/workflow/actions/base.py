"""Base class for all actions.

An action's behaviour lives in :meth:`Action.invoke`. Everything else here is
shared plumbing: input resolution, the action's own variable namespace and its
persisted output.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from actionflow.core.errors import ConfigurationError, InputLookupError
from actionflow.state.gateway import OUTPUT_VARIABLE, PersistenceGateway
from actionflow.state.store import Number
from actionflow.workflow.models import (
    ActionConfiguration,
    InputSource,
    RunContext,
    SourceKind,
)

if TYPE_CHECKING:
    from actionflow.workflow.graph import ActionGraph

logger = logging.getLogger(__name__)


class Action(ABC):
    """A unit of work with resolved-input-in, optional-output-out semantics.

    Subclasses may narrow :attr:`config_model` to validate type-specific
    configuration.
    """

    config_model: ClassVar[type[ActionConfiguration]] = ActionConfiguration

    def __init__(
        self,
        *,
        config: ActionConfiguration,
        gateway: PersistenceGateway,
        graph: ActionGraph,
    ) -> None:
        self.config = config
        self._gateway = gateway
        self.graph = graph

    @property
    def action_id(self) -> str:
        return self.config.action_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(action_id={self.action_id!r})"

    @abstractmethod
    def invoke(self, inputs: dict[str, Any]) -> Mapping[str, Any] | None:
        """Run the action.

        The returned mapping (if any) must be flat and JSON-serializable. The
        orchestrator persists it as this action's output, where later actions
        can read it with ``GET:<actionId>:<field>``.
        """

    # Variables, always scoped to this action's id. Other actions can only see
    # this action's output, never these.

    def get_string_variable(self, variable_name: str) -> str | None:
        return self._gateway.get_string_variable(self.action_id, variable_name)

    def get_numeric_variable(self, variable_name: str) -> Number | None:
        return self._gateway.get_numeric_variable(self.action_id, variable_name)

    def set_string_variable(
        self, variable_name: str, value: str, expire: int | None = None
    ) -> None:
        self._gateway.set_string_variable(self.action_id, variable_name, value, expire)

    def set_numeric_variable(
        self, variable_name: str, value: Number, expire: int | None = None
    ) -> None:
        self._gateway.set_numeric_variable(
            self.action_id, variable_name, value, expire, overwrite_if_exists=True
        )

    def set_numeric_variable_if_not_exist(
        self, variable_name: str, value: Number, expire: int | None = None
    ) -> bool:
        """Initialise a counter once. Returns False if it already held a value."""
        return self._gateway.set_numeric_variable(
            self.action_id, variable_name, value, expire, overwrite_if_exists=False
        )

    def variable_exists(self, variable_name: str) -> bool:
        return self._gateway.variable_exists(self.action_id, variable_name)

    def increment_variable(self, variable_name: str, by: Number = 1) -> Number:
        return self._gateway.increment_variable(self.action_id, variable_name, by)

    def set_expiry(self, variable_name: str, expire_at: int) -> bool:
        """Expire a variable at a unix timestamp in milliseconds."""
        return self._gateway.set_variable_expiry(self.action_id, variable_name, expire_at)

    # Output

    def set_output(self, output: Mapping[str, Any]) -> None:
        if not isinstance(output, Mapping):
            raise ConfigurationError(
                f"{self!r} returned {type(output).__name__}; output must be a mapping"
            )
        try:
            serialized = json.dumps(dict(output))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"{self!r} returned output that is not JSON-serializable: {e}"
            ) from e
        self.set_string_variable(OUTPUT_VARIABLE, serialized)

    def get_output(self) -> dict[str, Any] | None:
        raw = self.get_string_variable(OUTPUT_VARIABLE)
        if not raw:
            return None
        return json.loads(raw)

    # Input resolution

    def get_input(self, context: RunContext) -> dict[str, Any]:
        """Resolve every configured input source.

        Raises before returning if any source cannot be satisfied, so
        :meth:`invoke` never sees a partially resolved input.
        """
        sources = self.config.parsed_sources()
        if not sources:
            return {}

        globals_ = context.globals()
        return {
            attribute: self._resolve(source, globals_) for attribute, source in sources.items()
        }

    def _resolve(self, source: InputSource, globals_: Mapping[str, Any]) -> Any:
        if source.kind is SourceKind.GLOBAL:
            return globals_.get(source.name or "")

        if source.kind is SourceKind.GET:
            assert source.action_id is not None and source.name is not None
            other = self.graph.get(source.action_id)
            output = other.action.get_output()
            if output is None:
                raise InputLookupError(source.action_id, source.name)
            return output.get(source.name)

        return source.expression
