"""Action implementations."""

from actionflow.workflow.actions.base import Action
from actionflow.workflow.actions.test_action import (
    CounterAction,
    EchoAction,
    FailAction,
    TestAction,
)
from actionflow.workflow.actions.verify_payload import VerifyPayload

__all__ = [
    "Action",
    "CounterAction",
    "EchoAction",
    "FailAction",
    "TestAction",
    "VerifyPayload",
]
