"""Namespaced access to persisted application state.

Every key the engine writes is derived from the active
(application id, user id) identity, so two processes addressing the same pair
always observe the same state:

- action variables: ``{app}:{user}:actionState:{actionId}:{variable}``
- position pointer: ``{app}:{user}:linkedListId``

Swapping the physical store (memory, sqlite, ...) happens behind
:class:`~actionflow.state.store.KeyValueStore`; nothing above this module
builds keys by hand.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from actionflow.core.errors import ConfigurationError
from actionflow.core.logging import timed_event
from actionflow.state.store import KeyValueStore, Number

if TYPE_CHECKING:
    from actionflow.workflow.graph import ActionGraph

logger = logging.getLogger(__name__)

OUTPUT_VARIABLE = "output"


@dataclass(frozen=True, slots=True)
class Identity:
    """The (application, user) pair a run executes for."""

    application_id: str
    user_id: str

    def __post_init__(self) -> None:
        # Both ids become key segments; a colon would let two pairs share keys.
        for field_name in ("application_id", "user_id"):
            value = getattr(self, field_name)
            if not value or ":" in value:
                raise ConfigurationError(
                    f"{field_name} must be non-empty and must not contain ':'; got {value!r}",
                    {field_name: value},
                )

    @property
    def namespace(self) -> str:
        return f"{self.application_id}:{self.user_id}"


class HeapSnapshot(BaseModel):
    """Every action's serialized output plus the current pointer."""

    heap: dict[str, str | None] = Field(default_factory=dict)
    pointer: str | None = None


class PersistenceGateway:
    """Key/value access to the external store for one identity pair."""

    def __init__(
        self,
        store: KeyValueStore,
        identity: Identity,
        *,
        heap_max_workers: int = 8,
    ) -> None:
        self.store = store
        self.identity = identity
        self.heap_max_workers = heap_max_workers

    def action_key(self, action_id: str, variable_name: str) -> str:
        return f"{self.identity.namespace}:actionState:{action_id}:{variable_name}"

    def pointer_key(self) -> str:
        return f"{self.identity.namespace}:linkedListId"

    # Raw key access

    def get_string(self, key: str) -> str | None:
        """Return the stored text, ``""`` if the key holds no text, or None if absent."""
        with timed_event(f"PersistenceGateway.get_string {key}"):
            item = self.store.get(key)
        if item is None:
            return None
        return item.string_value if item.string_value is not None else ""

    def set_string(self, key: str, value: str, expire: int | None = None) -> None:
        with timed_event(f"PersistenceGateway.set_string {key}"):
            self.store.put_string(key, value, expire)

    def get_number(self, key: str) -> Number | None:
        with timed_event(f"PersistenceGateway.get_number {key}"):
            item = self.store.get(key)
        if item is None:
            return None
        return item.number_value

    def set_number(
        self,
        key: str,
        value: Number,
        expire: int | None = None,
        overwrite_if_exists: bool = True,
    ) -> bool:
        """Store a number.

        With ``overwrite_if_exists=False`` the write only happens when the key
        currently holds no value. Returns whether the value was written.
        """
        with timed_event(f"PersistenceGateway.set_number {key}"):
            return self.store.put_number(key, value, expire, only_if_absent=not overwrite_if_exists)

    def exists(self, key: str) -> bool:
        with timed_event(f"PersistenceGateway.exists {key}"):
            return self.store.get(key) is not None

    def increment(self, key: str, by: Number = 1) -> Number:
        with timed_event(f"PersistenceGateway.increment {key} {by}"):
            return self.store.increment(key, by)

    def set_expiry(self, key: str, at_unix_ms: int) -> bool:
        with timed_event(f"PersistenceGateway.set_expiry {key}"):
            return self.store.set_expiry(key, at_unix_ms)

    # Action-scoped variables

    def get_string_variable(self, action_id: str, variable_name: str) -> str | None:
        return self.get_string(self.action_key(action_id, variable_name))

    def get_numeric_variable(self, action_id: str, variable_name: str) -> Number | None:
        return self.get_number(self.action_key(action_id, variable_name))

    def set_string_variable(
        self, action_id: str, variable_name: str, value: str, expire: int | None = None
    ) -> None:
        self.set_string(self.action_key(action_id, variable_name), value, expire)

    def set_numeric_variable(
        self,
        action_id: str,
        variable_name: str,
        value: Number,
        expire: int | None = None,
        overwrite_if_exists: bool = True,
    ) -> bool:
        return self.set_number(
            self.action_key(action_id, variable_name),
            value,
            expire,
            overwrite_if_exists=overwrite_if_exists,
        )

    def variable_exists(self, action_id: str, variable_name: str) -> bool:
        return self.exists(self.action_key(action_id, variable_name))

    def increment_variable(self, action_id: str, variable_name: str, by: Number = 1) -> Number:
        """Atomically add ``by`` to a variable (absent counts as 0) and return the new value."""
        return self.increment(self.action_key(action_id, variable_name), by)

    def set_variable_expiry(self, action_id: str, variable_name: str, at_unix_ms: int) -> bool:
        return self.set_expiry(self.action_key(action_id, variable_name), at_unix_ms)

    # Position pointer

    def get_pointer(self) -> str | None:
        """Return the pointer for this identity.

        None = never set.
        ``""`` = set before, reset after a successful run.
        Any other value = the id of the next action to execute.
        """
        return self.get_string(self.pointer_key())

    def set_pointer(self, value: str) -> None:
        self.set_string(self.pointer_key(), value)

    def reset(self) -> int:
        """Delete the pointer and every action variable for this identity."""
        removed = self.store.delete_prefix(f"{self.identity.namespace}:")
        logger.warning(
            "Identity state cleared",
            extra={
                "application_id": self.identity.application_id,
                "user_id": self.identity.user_id,
                "removed": removed,
            },
        )
        return removed

    # Aggregate view

    def _read_output(self, action_id: str) -> str | None:
        try:
            return self.get_string_variable(action_id, OUTPUT_VARIABLE)
        except Exception as e:
            logger.warning(
                f"Failed to read output for heap snapshot: {e}",
                extra={"action_id": action_id},
            )
            return None

    def get_heap(self, graph: ActionGraph) -> HeapSnapshot:
        """Read every action's output concurrently plus the current pointer."""
        action_ids = list(graph.nodes)
        workers = max(1, min(self.heap_max_workers, len(action_ids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outputs = list(pool.map(self._read_output, action_ids))

        return HeapSnapshot(heap=dict(zip(action_ids, outputs)), pointer=self.get_pointer())
