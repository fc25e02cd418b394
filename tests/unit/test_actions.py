"""Unit tests for the action contract: input resolution, variables and output."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from actionflow.core.errors import (
    ActionFlowError,
    BadRequestError,
    ConfigurationError,
    ErrorKind,
    InputLookupError,
    UnknownActionError,
)
from actionflow.state.gateway import Identity, PersistenceGateway
from actionflow.workflow.graph import GraphBuilder
from actionflow.workflow.models import RunContext


@pytest.fixture
def context(identity: Identity) -> RunContext:
    return RunContext(identity=identity, payload={"payload": {"foo": 1}, "channel": "sms"})


def test_literal_and_global_sources(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "Echo",
            "a1",
            input_sources={
                "user": "GLOBAL:user",
                "app": "GLOBAL:application",
                "channel": "GLOBAL:channel",
                "missing": "GLOBAL:nothing",
                "static": "hello world",
                "lookalike": "GETTING:started",
            },
        )
    )

    resolved = graph.get("a1").action.get_input(context)

    assert resolved == {
        "user": {"id": "fakeUserId"},
        "app": {"id": "fakeAppId"},
        "channel": "sms",
        "missing": None,
        "static": "hello world",
        "lookalike": "GETTING:started",
    }


def test_payload_cannot_shadow_identity_globals(identity: Identity) -> None:
    context = RunContext(identity=identity, payload={"user": {"id": "spoofed"}})
    assert context.globals()["user"] == {"id": "fakeUserId"}


def test_get_source_reads_other_action_output(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "TestAction",
            "a1",
            on_success=conf_node("Echo", "a2", input_sources={"x": "GET:a1:someText"}),
        )
    )
    graph.get("a1").action.set_output({"someText": "Hola"})

    assert graph.get("a2").action.get_input(context) == {"x": "Hola"}


def test_get_source_missing_field_resolves_to_none(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "Echo", "a1", on_success=conf_node("Echo", "a2", input_sources={"x": "GET:a1:nope"})
        )
    )
    graph.get("a1").action.set_output({"other": 1})

    assert graph.get("a2").action.get_input(context) == {"x": None}


def test_get_source_without_output_fails_with_lookup_error(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "Echo", "a1", on_success=conf_node("Echo", "a2", input_sources={"x": "GET:a1:text"})
        )
    )

    with pytest.raises(InputLookupError) as excinfo:
        graph.get("a2").action.get_input(context)

    assert "a1:text" in str(excinfo.value)
    assert excinfo.value.kind is ErrorKind.MISCONFIGURATION
    assert isinstance(excinfo.value, ConfigurationError)


def test_get_source_naming_a_removed_action(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "Echo", "a1", input_sources={"x": "GET:a2:text"}, on_success=conf_node("Echo", "a2")
        )
    )
    del graph.nodes["a2"]

    with pytest.raises(UnknownActionError):
        graph.get("a1").action.get_input(context)


def test_get_source_may_reference_a_later_branch(
    gateway: PersistenceGateway, context: RunContext, conf_node
) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node(
            "Echo",
            "root",
            input_sources={"x": "GET:deep:value"},
            on_success=conf_node("Echo", "mid", on_success=conf_node("Echo", "deep")),
        )
    )
    graph.get("deep").action.set_output({"value": 42})

    assert graph.get("root").action.get_input(context) == {"x": 42}


def test_output_roundtrip_and_absence(gateway: PersistenceGateway, conf_node) -> None:
    action = GraphBuilder(gateway).compile(conf_node("Echo", "a1")).get("a1").action

    assert action.get_output() is None
    action.set_output({"text": "Hola", "n": 2, "flag": True})
    assert action.get_output() == {"text": "Hola", "n": 2, "flag": True}
    assert gateway.get_string_variable("a1", "output") == '{"text": "Hola", "n": 2, "flag": true}'


def test_set_output_rejects_non_mapping(gateway: PersistenceGateway, conf_node) -> None:
    action = GraphBuilder(gateway).compile(conf_node("Echo", "a1")).get("a1").action

    with pytest.raises(ConfigurationError):
        action.set_output(["not", "a", "mapping"])  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "output",
    [
        {"tags": {"a", "b"}},
        {"when": datetime(2024, 1, 1, tzinfo=UTC)},
        {"obj": object()},
    ],
)
def test_set_output_rejects_values_that_are_not_json(
    gateway: PersistenceGateway, conf_node, output: dict
) -> None:
    action = GraphBuilder(gateway).compile(conf_node("Echo", "a1")).get("a1").action

    with pytest.raises(ConfigurationError):
        action.set_output(output)

    assert action.get_output() is None


def test_variables_are_scoped_to_the_action(gateway: PersistenceGateway, conf_node) -> None:
    graph = GraphBuilder(gateway).compile(
        conf_node("Echo", "A", on_success=conf_node("Echo", "B"))
    )
    a = graph.get("A").action
    b = graph.get("B").action

    a.set_string_variable("name", "alpha")
    a.set_numeric_variable("n", 7)

    assert a.get_string_variable("name") == "alpha"
    assert b.get_string_variable("name") is None
    assert b.get_numeric_variable("n") is None
    assert b.variable_exists("name") is False
    assert gateway.get_string_variable("A", "name") == "alpha"


def test_numeric_variable_helpers(gateway: PersistenceGateway, conf_node, clock) -> None:
    action = GraphBuilder(gateway).compile(conf_node("Echo", "a1")).get("a1").action

    assert action.set_numeric_variable_if_not_exist("count", 10) is True
    assert action.set_numeric_variable_if_not_exist("count", 99) is False
    assert action.increment_variable("count") == 11
    assert action.increment_variable("count", 4) == 15

    action.set_numeric_variable("count", 0)
    assert action.get_numeric_variable("count") == 0

    assert action.set_expiry("count", clock.now + 5) is True
    clock.advance(6)
    assert action.variable_exists("count") is False


def test_counter_action_counts_per_identity(memory_store, conf_node) -> None:
    conf = conf_node("Counter", "c", start=100)
    first = PersistenceGateway(memory_store, Identity("app", "u1"))
    second = PersistenceGateway(memory_store, Identity("app", "u2"))
    counter_1 = GraphBuilder(first).compile(conf).get("c").action
    counter_2 = GraphBuilder(second).compile(conf).get("c").action

    assert counter_1.invoke({}) == {"count": 101}
    assert counter_1.invoke({}) == {"count": 102}
    assert counter_2.invoke({}) == {"count": 101}


def test_test_action_output(gateway: PersistenceGateway, conf_node) -> None:
    action = GraphBuilder(gateway).compile(conf_node("TestAction", "t")).get("t").action

    out = action.invoke({"myInput": "x"})

    assert out is not None
    assert out["someText"] == "Hola"
    assert out["flimFlam"] is True
    assert out["inputGivenToAction"] == {"myInput": "x"}


def test_fail_action_raises_configured_kind(gateway: PersistenceGateway, conf_node) -> None:
    action = GraphBuilder(gateway).compile(
        conf_node("Fail", "f", kind="MISCONFIGURATION", message="boom")
    ).get("f").action

    with pytest.raises(ActionFlowError) as excinfo:
        action.invoke({})

    assert excinfo.value.kind is ErrorKind.MISCONFIGURATION
    assert excinfo.value.message == "boom"


def test_verify_payload_accepts_valid_payload(gateway: PersistenceGateway, conf_node) -> None:
    schema = {
        "type": "object",
        "properties": {"foo": {"type": "integer"}, "bar": {"type": "string"}},
        "required": ["foo"],
        "additionalProperties": False,
    }
    action = GraphBuilder(gateway).compile(
        conf_node("VerifyPayload", "v", schema=schema)
    ).get("v").action

    assert action.invoke({"payload": {"foo": 1}}) == {"validatedInput": {"foo": 1}}

    with pytest.raises(BadRequestError) as excinfo:
        action.invoke({"payload": {"bar": 2}})
    assert excinfo.value.kind is ErrorKind.BAD_REQUEST
    assert len(excinfo.value.diagnostic_info["errors"]) == 2
