from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog.contextvars import bind_contextvars, unbind_contextvars

from .config import Settings
from .db import Database
from .errors import InternalError, ServiceError
from .logging_config import configure_logging
from .routers import appointments, auth, patients, payments, reports, sessions, users

logger = structlog.get_logger(__name__)

_UNIQUE_MARKERS = ("unique", "duplicate")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """
    Factory da aplicação. Settings e Database podem ser injetados (testes);
    senão vêm do ambiente.
    """
    settings = settings or Settings.from_env()
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Cria tabelas (idempotente)
        configure_logging(settings.log_level, settings.log_json)
        database.create_all()
        logger.info("app_started", environment=settings.environment, conflict_window=settings.conflict_window)
        try:
            yield
        finally:
            database.dispose()

    app = FastAPI(title="Serena API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            unbind_contextvars("request_id", "method", "path")

    # Erros -> {error, details?}

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        logger.info("request_error", status=exc.status_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("request_invalid", errors=len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={"error": "Dados inválidos", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        text = str(exc.orig).lower()
        if any(marker in text for marker in _UNIQUE_MARKERS):
            logger.info("integrity_conflict")
            return JSONResponse(status_code=409, content={"error": "Dados já existem"})
        logger.info("integrity_violation")
        return JSONResponse(status_code=400, content={"error": "Referência inválida"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error")
        err = InternalError(details=None if settings.is_production else str(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    for module in (auth, users, patients, sessions, appointments, payments, reports):
        app.include_router(module.router, prefix="/api")

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    return app


app = create_app()
