#!/usr/bin/env python3
"""Programmatic run example.

This demonstrates using the engine components directly:

* load settings from `.env`
* compile `examples/application.json` for one (application, user) identity
* run it, then print the heap snapshot

Run it twice against the sqlite backend to see the visit counter survive
between processes:

    ACTIONFLOW_STORE_BACKEND=sqlite python examples/basic_usage.py --user-id ada
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from actionflow.core.config import EngineConfig
from actionflow.core.errors import ActionFlowError
from actionflow.state.factory import StoreFactory
from actionflow.state.gateway import Identity, PersistenceGateway
from actionflow.workflow.application import Application
from actionflow.workflow.models import load_application_config

_DEFAULT_CONFIG = Path(__file__).with_name("application.json")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run an application (programmatic example).")
    parser.add_argument("--config", type=Path, default=_DEFAULT_CONFIG, help="Application JSON")
    parser.add_argument("--app-id", default="example-app", help="Application id")
    parser.add_argument("--user-id", required=True, help="User id")
    parser.add_argument("--name", default="Ada", help='Value for the "name" payload field')
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = EngineConfig()
    settings.setup_logging()

    store = StoreFactory.create(settings.store)
    gateway = PersistenceGateway(store, Identity(args.app_id, args.user_id))

    try:
        app = Application.from_configuration(load_application_config(args.config), gateway)
        snapshot = app.run({"payload": {"name": args.name}, "channel": "example"})
    except ActionFlowError as exc:
        print(json.dumps(exc.to_json()))
        return 1
    finally:
        store.close()

    for action_id, output in snapshot.heap.items():
        print(f"{action_id}: {output}")
    print(f"Pointer: {snapshot.pointer!r}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
