"""CLI entrypoint.

Runs an application configuration for one (application, user) identity
against the configured store, and inspects or resets that identity's state.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from actionflow import __version__
from actionflow.core.config import EngineConfig
from actionflow.core.errors import ActionFlowError, ErrorKind
from actionflow.state.factory import StoreFactory
from actionflow.state.gateway import Identity, PersistenceGateway
from actionflow.workflow.application import Application
from actionflow.workflow.graph import GraphBuilder
from actionflow.workflow.models import load_application_config

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_MISCONFIGURATION = 2
EXIT_BAD_REQUEST = 3


def _add_identity_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--app-id", dest="application_id", required=True, help="Application id")
    parser.add_argument("--user-id", dest="user_id", required=True, help="User id")


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        required=True,
        help="Path to the application configuration (JSON)",
    )


def _parse_payload(value: str | None) -> dict[str, Any]:
    if value is None:
        return {}
    parsed = json.loads(value)
    if not isinstance(parsed, dict):
        raise ValueError("--payload must be a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="actionflow",
        description="Durable, resumable action-graph runner",
    )
    parser.add_argument("--version", action="version", version=f"actionflow {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser(
        "validate", help="Compile a configuration and list its actions"
    )
    _add_config_arg(validate)

    run = subparsers.add_parser(
        "run", help="Run an application for one identity, resuming from its pointer"
    )
    _add_config_arg(run)
    _add_identity_args(run)
    run.add_argument(
        "--payload",
        default=None,
        help="JSON object merged into the globals visible to GLOBAL: inputs",
    )

    heap = subparsers.add_parser("heap", help="Print every action's stored output and the pointer")
    _add_config_arg(heap)
    _add_identity_args(heap)

    pointer = subparsers.add_parser("pointer", help="Show or reset an identity's pointer")
    pointer.add_argument("action", choices=["show", "reset"])
    _add_identity_args(pointer)
    pointer.add_argument(
        "--clear-state",
        action="store_true",
        help="With 'reset': also delete every action variable for this identity",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = EngineConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_MISCONFIGURATION

    config.setup_logging()

    store = StoreFactory.create(config.store)
    try:
        if args.command == "validate":
            conf = load_application_config(args.config_path)
            probe = PersistenceGateway(store, Identity(application_id="-", user_id="-"))
            graph = GraphBuilder(probe).compile(conf)
            print(json.dumps({"root": graph.root.id, "actions": sorted(graph.nodes)}, indent=2))
            return 0

        gateway = PersistenceGateway(
            store,
            Identity(application_id=args.application_id, user_id=args.user_id),
            heap_max_workers=config.heap_max_workers,
        )

        if args.command == "run":
            try:
                payload = _parse_payload(args.payload)
            except ValueError as e:
                print(f"Invalid --payload: {e}", file=sys.stderr)
                return EXIT_BAD_REQUEST

            conf = load_application_config(args.config_path)
            snapshot = Application.from_configuration(conf, gateway).run(payload)
            print(snapshot.model_dump_json(indent=2))
            return 0

        if args.command == "heap":
            graph = GraphBuilder(gateway).compile(load_application_config(args.config_path))
            print(gateway.get_heap(graph).model_dump_json(indent=2))
            return 0

        if args.command == "pointer":
            if args.action == "reset":
                if args.clear_state:
                    gateway.reset()
                else:
                    gateway.set_pointer("")
            print(json.dumps({"pointer": gateway.get_pointer()}))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_MISCONFIGURATION

    except ActionFlowError as e:
        logger.error(str(e), extra={"kind": e.kind.value})
        print(json.dumps(e.to_json()), file=sys.stderr)
        if e.kind is ErrorKind.BAD_REQUEST:
            return EXIT_BAD_REQUEST
        return EXIT_MISCONFIGURATION

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILURE

    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
