"""Compiled action graph.

A configuration tree compiles into two views of the same nodes:

1. a tree rooted at :attr:`ActionGraph.root`, walked via success/failure edges;
2. a flat ``id -> node`` index (:attr:`ActionGraph.nodes`) used to resolve the
   persisted pointer and ``GET:`` lookups.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from actionflow.core.errors import (
    ConfigurationError,
    DuplicateActionIdError,
    UnknownActionError,
)
from actionflow.state.gateway import PersistenceGateway
from actionflow.workflow.actions.base import Action
from actionflow.workflow.models import (
    ApplicationConfiguration,
    SourceKind,
    parse_application_config,
)
from actionflow.workflow.registry import action_class_for

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ActionNode:
    id: str
    action: Action
    on_success: ActionNode | None = None
    on_failure: ActionNode | None = None
    # Diagnostic only; never persisted.
    invoked: bool = False


@dataclass(eq=False)
class ActionGraph:
    nodes: dict[str, ActionNode] = field(default_factory=dict)
    _root: ActionNode | None = field(default=None, repr=False)

    @property
    def root(self) -> ActionNode:
        if self._root is None:
            raise ConfigurationError("Action graph has no root; compile a configuration first")
        return self._root

    def register(self, node: ActionNode) -> None:
        if node.id in self.nodes:
            raise DuplicateActionIdError(
                f"Duplicate actionId {node.id!r}; action ids must be unique",
                {"action_id": node.id},
            )
        self.nodes[node.id] = node

    def get(self, action_id: str) -> ActionNode:
        try:
            return self.nodes[action_id]
        except KeyError:
            raise UnknownActionError(action_id) from None

    def __contains__(self, action_id: object) -> bool:
        return action_id in self.nodes

    def __iter__(self) -> Iterator[ActionNode]:
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)

    def reset_invoked(self) -> None:
        for node in self.nodes.values():
            node.invoked = False


class GraphBuilder:
    """Instantiate one action per configuration node and link the edges."""

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway

    def compile(
        self, configuration: ApplicationConfiguration | Mapping[str, Any]
    ) -> ActionGraph:
        conf = parse_application_config(configuration)
        graph = ActionGraph()
        graph._root = self._build(conf, graph)
        self._check_references(graph)
        logger.debug(
            "Compiled action graph",
            extra={"root": graph._root.id, "actions": sorted(graph.nodes)},
        )
        return graph

    @staticmethod
    def _check_references(graph: ActionGraph) -> None:
        """Reject ``GET:`` sources naming an action id the graph does not contain."""
        for node in graph:
            for attribute, source in node.action.config.parsed_sources().items():
                if source.kind is SourceKind.GET and source.action_id not in graph:
                    raise ConfigurationError(
                        f"Action {node.id!r} input {attribute!r} reads from unknown "
                        f"action {source.action_id!r} ({source.expression})",
                        {
                            "action_id": node.id,
                            "attribute": attribute,
                            "expression": source.expression,
                        },
                    )

    def _build(self, conf: ApplicationConfiguration, graph: ActionGraph) -> ActionNode:
        action_cls = action_class_for(conf.type)
        try:
            config = action_cls.config_model.model_validate(
                conf.config.model_dump(by_alias=True)
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for {conf.type} {conf.config.action_id!r}: "
                f"{e.error_count()} error(s)",
                {"action_id": conf.config.action_id, "errors": e.errors(include_url=False)},
            ) from e

        # Actions receive the graph while it is still being built; GET lookups
        # resolve against the flat index at run time, so forward references work.
        action = action_cls(config=config, gateway=self.gateway, graph=graph)
        node = ActionNode(id=config.action_id, action=action)
        graph.register(node)

        node.on_success = self._build(conf.on_success, graph) if conf.on_success else None
        node.on_failure = self._build(conf.on_failure, graph) if conf.on_failure else None
        return node
