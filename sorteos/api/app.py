"""
FastAPI application factory.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sorteos.api.dependencies import get_store
from sorteos.api.middleware import setup_compression, setup_cors, setup_request_size_limit, setup_security_headers
from sorteos.api.observability import ObservabilityMiddleware, generate_request_id, get_request_id
from sorteos.api.routes import auth as auth_routes
from sorteos.api.routes import live_events as live_events_routes
from sorteos.api.routes import notifications as notifications_routes
from sorteos.api.routes import participant as participant_routes
from sorteos.api.routes import payments as payments_routes
from sorteos.api.routes import plans as plans_routes
from sorteos.api.routes import public as public_routes
from sorteos.api.routes import raffles as raffles_routes
from sorteos.api.routes import users as users_routes
from sorteos.api.routes import winners as winners_routes
from sorteos.api.state import AppState
from sorteos.exceptions import SorteosError, exception_to_http_status
from sorteos.logging_config import configure_logging
from sorteos.repository.store import TableStore
from sorteos.services.auth import SupabaseAuthClient


def create_app(
    *,
    store: TableStore | None = None,
    auth_client: SupabaseAuthClient | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        yield

    app = FastAPI(
        title="Sorteos API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    # Without an explicit store the global one is resolved on first use, so importing needs no database
    app.state.auth_client = auth_client
    app.state.state = AppState(store=store, auth_client=auth_client) if store is not None else None

    setup_compression(app)
    setup_cors(app)
    setup_security_headers(app)
    setup_request_size_limit(app)

    # Observability middleware (must be added last to wrap all others)
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/v1/health")
    def health(response: Response) -> dict:
        response.headers["Cache-Control"] = "no-store"
        return {"ok": True}

    @app.get("/v1/health/ready", response_model=None)
    def ready(request: Request, response: Response) -> JSONResponse | dict:
        response.headers["Cache-Control"] = "no-store"
        if not get_store(request).ping():
            return JSONResponse(status_code=503, content={"ok": False}, headers={"Cache-Control": "no-store"})
        return {"ok": True}

    app.include_router(auth_routes.router)
    app.include_router(public_routes.router)
    app.include_router(participant_routes.router)
    app.include_router(notifications_routes.router)
    app.include_router(raffles_routes.router)
    app.include_router(live_events_routes.router)
    app.include_router(payments_routes.router)
    app.include_router(plans_routes.router)
    app.include_router(users_routes.router)
    app.include_router(winners_routes.router)

    def _error_headers(request: Request) -> dict[str, str]:
        # Clients always get a request id for correlation, even on errors
        rid = request.headers.get("x-request-id") or get_request_id() or generate_request_id()
        return {"X-Request-ID": rid, "Cache-Control": "no-store"}

    @app.exception_handler(SorteosError)
    def _domain_error(request: Request, exc: SorteosError) -> JSONResponse:
        headers = _error_headers(request)
        exc.request_id = headers["X-Request-ID"]
        return JSONResponse(status_code=exception_to_http_status(exc), content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "message": "Datos inválidos", "detail": jsonable_encoder(exc.errors())},
            headers=_error_headers(request),
        )

    @app.exception_handler(Exception)
    def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # ObservabilityMiddleware logs the exception; we still return a safe, stable envelope.
        _ = exc
        return JSONResponse(status_code=500, content={"error": "internal_error"}, headers=_error_headers(request))

    return app


app = create_app()
