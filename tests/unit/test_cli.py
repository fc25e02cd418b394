from __future__ import annotations

import json
from pathlib import Path

import pytest

from actionflow.main import main


@pytest.fixture
def sqlite_env(monkeypatch, tmp_path: Path) -> Path:
    db = tmp_path / ".state" / "cli.db"
    monkeypatch.setenv("ACTIONFLOW_STORE_BACKEND", "sqlite")
    monkeypatch.setenv("ACTIONFLOW_STORE_SQLITE_PATH", str(db))
    monkeypatch.setenv("ACTIONFLOW_LOG_LEVEL", "CRITICAL")
    return db


@pytest.fixture
def app_config(tmp_path: Path, conf_node) -> Path:
    path = tmp_path / "application.json"
    path.write_text(
        json.dumps(
            conf_node(
                "Echo",
                "greet",
                input_sources={"who": "GLOBAL:name"},
                constants={"greeting": "Hola"},
                on_success=conf_node("Fail", "gate", on_failure=conf_node("Counter", "count")),
            )
        ),
        encoding="utf-8",
    )
    return path


def _identity() -> list[str]:
    return ["--app-id", "app", "--user-id", "u1"]


def test_validate_lists_actions(sqlite_env: Path, app_config: Path, capsys) -> None:
    assert main(["validate", "--config", str(app_config)]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out == {"root": "greet", "actions": ["count", "gate", "greet"]}


def test_validate_reports_misconfiguration(sqlite_env: Path, tmp_path: Path, capsys) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"type": "Nope", "config": {"actionId": "x"}}), encoding="utf-8")

    assert main(["validate", "--config", str(bad)]) == 2

    err = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert err["kind"] == "MISCONFIGURATION"


def test_run_then_inspect_state(sqlite_env: Path, app_config: Path, capsys) -> None:
    code = main(
        ["run", "--config", str(app_config), *_identity(), "--payload", '{"name": "Ada"}']
    )
    assert code == 0

    snapshot = json.loads(capsys.readouterr().out)
    assert snapshot["pointer"] == ""
    assert json.loads(snapshot["heap"]["greet"]) == {"who": "Ada", "greeting": "Hola"}
    assert snapshot["heap"]["gate"] is None
    assert json.loads(snapshot["heap"]["count"]) == {"count": 1}

    # State is persisted in the sqlite file between invocations.
    assert main(["heap", "--config", str(app_config), *_identity()]) == 0
    assert json.loads(capsys.readouterr().out)["heap"]["count"] == '{"count": 1}'

    assert main(["pointer", "show", *_identity()]) == 0
    assert json.loads(capsys.readouterr().out) == {"pointer": ""}


def test_pointer_reset_with_clear_state(sqlite_env: Path, app_config: Path, capsys) -> None:
    assert main(["run", "--config", str(app_config), *_identity()]) == 0
    capsys.readouterr()

    assert main(["pointer", "reset", "--clear-state", *_identity()]) == 0
    assert json.loads(capsys.readouterr().out) == {"pointer": None}

    assert main(["heap", "--config", str(app_config), *_identity()]) == 0
    heap = json.loads(capsys.readouterr().out)["heap"]
    assert set(heap.values()) == {None}


def test_run_rejects_non_object_payload(sqlite_env: Path, app_config: Path, capsys) -> None:
    assert main(["run", "--config", str(app_config), *_identity(), "--payload", "[1]"]) == 3
    assert "Invalid --payload" in capsys.readouterr().err

    assert main(["run", "--config", str(app_config), *_identity(), "--payload", "{"]) == 3


def test_run_bad_request_exit_code(
    sqlite_env: Path, tmp_path: Path, conf_node, capsys
) -> None:
    path = tmp_path / "verify.json"
    path.write_text(
        json.dumps(
            conf_node(
                "VerifyPayload",
                "verify",
                schema={"type": "object", "required": ["foo"]},
                input_sources={"payload": "GLOBAL:payload"},
            )
        ),
        encoding="utf-8",
    )

    code = main(["run", "--config", str(path), *_identity(), "--payload", '{"payload": {}}'])

    assert code == 3
    err = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert err["kind"] == "BAD_REQUEST"

    # The root failed before the pointer ever moved, so the next run retries it.
    assert main(["pointer", "show", *_identity()]) == 0
    assert json.loads(capsys.readouterr().out) == {"pointer": None}


def test_invalid_environment_exits_with_misconfiguration(monkeypatch, capsys) -> None:
    monkeypatch.setenv("ACTIONFLOW_HEAP_MAX_WORKERS", "zero")

    assert main(["pointer", "show", *_identity()]) == 2
    assert "Configuration error" in capsys.readouterr().err
