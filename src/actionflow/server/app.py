"""FastAPI app factory.

Endpoints are thin wrappers over :class:`actionflow.workflow.Application` and
:class:`actionflow.state.gateway.PersistenceGateway`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from actionflow import __version__
from actionflow.core.config import EngineConfig
from actionflow.core.errors import ActionFlowError, ErrorKind
from actionflow.server.config import ServerSettings
from actionflow.server.models import ErrorResponse, PointerResponse, RunRequest
from actionflow.state.factory import StoreFactory
from actionflow.state.gateway import HeapSnapshot, Identity, PersistenceGateway
from actionflow.state.store import KeyValueStore
from actionflow.workflow.application import Application
from actionflow.workflow.graph import GraphBuilder
from actionflow.workflow.models import load_application_config

logger = logging.getLogger(__name__)

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Input rejected by an action"},
    500: {"model": ErrorResponse, "description": "Application misconfigured"},
}


def create_app(
    settings: ServerSettings | None = None,
    engine_config: EngineConfig | None = None,
    store: KeyValueStore | None = None,
) -> FastAPI:
    settings = settings or ServerSettings()
    engine_config = engine_config or EngineConfig()
    store = store or StoreFactory.create(engine_config.store)

    # Fail at startup rather than on the first request.
    application_conf = load_application_config(settings.application_config_path)

    app = FastAPI(
        title="actionflow",
        version=__version__,
        description="REST API for running durable action graphs.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _gateway(application_id: str, user_id: str) -> PersistenceGateway:
        return PersistenceGateway(
            store,
            Identity(application_id=application_id, user_id=user_id),
            heap_max_workers=engine_config.heap_max_workers,
        )

    @app.exception_handler(ActionFlowError)
    async def _action_flow_error(_request: Request, exc: ActionFlowError) -> JSONResponse:
        status_code = 400 if exc.kind is ErrorKind.BAD_REQUEST else 500
        return JSONResponse(status_code=status_code, content=exc.to_json())

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post(
        "/api/applications/{application_id}/users/{user_id}/run",
        response_model=HeapSnapshot,
        responses=_ERROR_RESPONSES,
    )
    def run_application(
        application_id: str, user_id: str, request: RunRequest | None = None
    ) -> HeapSnapshot:
        gateway = _gateway(application_id, user_id)
        app_run = Application.from_configuration(application_conf, gateway)
        return app_run.run((request or RunRequest()).payload)

    @app.get(
        "/api/applications/{application_id}/users/{user_id}/heap",
        response_model=HeapSnapshot,
        responses=_ERROR_RESPONSES,
    )
    def get_heap(application_id: str, user_id: str) -> HeapSnapshot:
        gateway = _gateway(application_id, user_id)
        return gateway.get_heap(GraphBuilder(gateway).compile(application_conf))

    @app.get(
        "/api/applications/{application_id}/users/{user_id}/pointer",
        response_model=PointerResponse,
    )
    def get_pointer(application_id: str, user_id: str) -> PointerResponse:
        return PointerResponse(pointer=_gateway(application_id, user_id).get_pointer())

    @app.delete(
        "/api/applications/{application_id}/users/{user_id}/pointer",
        response_model=PointerResponse,
    )
    def reset_pointer(application_id: str, user_id: str) -> PointerResponse:
        gateway = _gateway(application_id, user_id)
        gateway.set_pointer("")
        logger.info(
            "Pointer reset", extra={"application_id": application_id, "user_id": user_id}
        )
        return PointerResponse(pointer=gateway.get_pointer())

    return app
