"""Action graphs, their configuration and the run loop.

A run is restartable by construction: the only state consulted to decide
what to execute next is the persisted pointer for the active identity.
"""

from actionflow.workflow.application import Application
from actionflow.workflow.graph import ActionGraph, ActionNode, GraphBuilder
from actionflow.workflow.models import (
    ActionConfiguration,
    ApplicationConfiguration,
    RunContext,
    load_application_config,
    parse_application_config,
)
from actionflow.workflow.registry import ActionType

__all__ = [
    "ActionConfiguration",
    "ActionGraph",
    "ActionNode",
    "ActionType",
    "Application",
    "ApplicationConfiguration",
    "GraphBuilder",
    "RunContext",
    "load_application_config",
    "parse_application_config",
]
