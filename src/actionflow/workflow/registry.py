"""The closed set of action types a configuration may name.

New action types are added here; nothing is looked up by reflection.
"""

from __future__ import annotations

from enum import Enum

from actionflow.core.errors import UnknownActionTypeError
from actionflow.workflow.actions import (
    Action,
    CounterAction,
    EchoAction,
    FailAction,
    TestAction,
    VerifyPayload,
)


class ActionType(str, Enum):
    TEST_ACTION = "TestAction"
    ECHO = "Echo"
    FAIL = "Fail"
    COUNTER = "Counter"
    VERIFY_PAYLOAD = "VerifyPayload"


ACTION_CLASSES: dict[ActionType, type[Action]] = {
    ActionType.TEST_ACTION: TestAction,
    ActionType.ECHO: EchoAction,
    ActionType.FAIL: FailAction,
    ActionType.COUNTER: CounterAction,
    ActionType.VERIFY_PAYLOAD: VerifyPayload,
}


def action_class_for(type_name: str) -> type[Action]:
    try:
        return ACTION_CLASSES[ActionType(type_name)]
    except ValueError:
        raise UnknownActionTypeError(
            f"Unknown action type {type_name!r}; expected one of "
            f"{sorted(t.value for t in ActionType)}",
            {"type": type_name},
        ) from None
