"""Test configuration and fixtures."""

from pathlib import Path
from typing import Any

import pytest

from actionflow.core.config import EngineConfig, StoreConfig
from actionflow.state.gateway import Identity, PersistenceGateway
from actionflow.state.store import InMemoryStore, SqliteStore


class FakeClock:
    """Manually advanced clock in unix milliseconds."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryStore:
    """Provide an empty in-memory store."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def sqlite_store(tmp_path: Path, clock: FakeClock):
    """Provide an empty sqlite store backed by a temp file."""
    store = SqliteStore(tmp_path / ".state" / "actionflow.db", clock=clock)
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest):
    """Run a test against every store backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def identity() -> Identity:
    return Identity(application_id="fakeAppId", user_id="fakeUserId")


@pytest.fixture
def gateway(memory_store: InMemoryStore, identity: Identity) -> PersistenceGateway:
    return PersistenceGateway(memory_store, identity)


@pytest.fixture
def engine_config(tmp_path: Path) -> EngineConfig:
    """Provide a test engine configuration."""
    return EngineConfig(
        log_level="DEBUG",
        debug=True,
        store=StoreConfig(backend="sqlite", sqlite_path=tmp_path / "state.db"),
    )


def node(
    type_: str,
    action_id: str,
    *,
    input_sources: dict[str, str] | None = None,
    on_success: dict[str, Any] | None = None,
    on_failure: dict[str, Any] | None = None,
    **config: Any,
) -> dict[str, Any]:
    """Build one configuration tree node in its wire (camelCase) form."""
    conf: dict[str, Any] = {"actionId": action_id, **config}
    if input_sources is not None:
        conf["inputSources"] = input_sources
    out: dict[str, Any] = {"type": type_, "config": conf}
    if on_success is not None:
        out["onSuccess"] = on_success
    if on_failure is not None:
        out["onFailure"] = on_failure
    return out


@pytest.fixture
def conf_node():
    """Expose :func:`node` to tests."""
    return node
