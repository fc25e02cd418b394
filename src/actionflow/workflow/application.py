"""Run loop walking an action graph for one (application, user) identity."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from actionflow.core.logging import timed_event
from actionflow.state.gateway import HeapSnapshot, PersistenceGateway
from actionflow.workflow.graph import ActionGraph, ActionNode, GraphBuilder
from actionflow.workflow.models import ApplicationConfiguration, RunContext

logger = logging.getLogger(__name__)


class Application:
    """Execute an action graph one step at a time, persisting position as it goes.

    The persisted pointer is the only thing consulted to decide where a run
    starts, so a run interrupted at any point resumes at the step that was in
    flight. Actions may therefore be invoked more than once for the same
    logical step.
    """

    def __init__(self, graph: ActionGraph, gateway: PersistenceGateway) -> None:
        self.graph = graph
        self.gateway = gateway

    @classmethod
    def from_configuration(
        cls,
        configuration: ApplicationConfiguration | Mapping[str, Any],
        gateway: PersistenceGateway,
    ) -> Application:
        return cls(GraphBuilder(gateway).compile(configuration), gateway)

    def run(self, payload: Mapping[str, Any] | None = None) -> HeapSnapshot:
        """Run from the persisted pointer until the chain completes.

        - get the next action id for this identity (root if none)
        - resolve that action's input
        - invoke it and persist its output
        - move the pointer along the success or failure edge
        - repeat

        Returns a heap snapshot once an action without a success edge
        completes. If an action fails and has no failure edge, its error is
        re-raised unchanged and the pointer keeps naming it, so the next run
        retries it.
        """
        context = RunContext(identity=self.gateway.identity, payload=dict(payload or {}))

        while True:
            node = self._current_node()
            try:
                self._execute(node, context)
            except Exception as e:
                if node.on_failure is None:
                    logger.error(
                        f"[{type(node.action).__name__}::{node.id}] failed with no onFailure",
                        exc_info=True,
                        extra={"action_id": node.id, "error_type": type(e).__name__},
                    )
                    raise
                logger.warning(
                    f"[{type(node.action).__name__}::{node.id}] failed; "
                    f"continuing at {node.on_failure.id!r}",
                    extra={"action_id": node.id, "error_type": type(e).__name__},
                )
                self.gateway.set_pointer(node.on_failure.id)
                continue

            if node.on_success is not None:
                self.gateway.set_pointer(node.on_success.id)
                continue

            self.gateway.set_pointer("")
            logger.info(
                "Application run completed",
                extra={
                    "application_id": self.gateway.identity.application_id,
                    "user_id": self.gateway.identity.user_id,
                    "last_action": node.id,
                },
            )
            return self.gateway.get_heap(self.graph)

    def _current_node(self) -> ActionNode:
        pointer = self.gateway.get_pointer()
        if not pointer:
            logger.debug("Starting at root.")
            return self.graph.root
        logger.debug(f'"{pointer}" is the next node.')
        return self.graph.get(pointer)

    def _execute(self, node: ActionNode, context: RunContext) -> None:
        name = type(node.action).__name__
        inputs = node.action.get_input(context)
        logger.debug(f"[{name}::{node.id}] Input: {inputs!r}")

        try:
            with timed_event(f"[{name}::{node.id}].invoke()"):
                output = node.action.invoke(inputs)
        finally:
            node.invoked = True

        logger.debug(f"[{name}::{node.id}] Output: {output!r}")
        if output is not None:
            node.action.set_output(output)
