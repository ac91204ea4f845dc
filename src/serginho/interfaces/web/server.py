"""Serginho WebInterface — JSON chat endpoints over the Orchestrator."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from serginho.config.settings import Settings, load_settings
from serginho.core.exceptions import (
    ChainExhaustedError,
    RaceExhaustedError,
    SerginhoError,
    SpecialistNotFoundError,
    ValidationError,
)
from serginho.core.structured_logger import TraceContext, get_logger
from serginho.core.types import DEFAULT_SESSION_ID, RequestMode, RequestOptions
from serginho.observability.metrics import PROMETHEUS_CONTENT_TYPE
from serginho.routing.orchestrator import Orchestrator
from serginho.specialists import SpecialistRegistry

logger = logging.getLogger(__name__)
slog = get_logger("WebInterface")

HYBRID_SESSION_ID = "hybrid-session"
TRACE_HEADER = "X-Trace-Id"


class ChatRequest(BaseModel):
    message: str | None = None
    sessionId: str | None = None
    specialistId: str | None = None
    # Prior turns as {"role", "content"} dicts; malformed entries are dropped downstream.
    messages: list[dict[str, Any]] | None = None

    model_config = ConfigDict(extra="allow")


class TraceMiddleware(BaseHTTPMiddleware):
    """Runs every request inside a TraceContext and echoes the id back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        with TraceContext(request.headers.get(TRACE_HEADER)) as trace_id:
            response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class WebInterface:
    def __init__(
        self,
        orchestrator: Orchestrator,
        settings: Settings,
        specialists: SpecialistRegistry,
    ) -> None:
        self.orchestrator = orchestrator
        self.settings = settings
        self.specialists = specialists
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            try:
                yield
            finally:
                await self.orchestrator.close()

        app = FastAPI(
            title=f"{self.settings.project_name} Web Interface",
            version=self.settings.version,
            lifespan=lifespan,
        )
        self._register_exception_handlers(app)
        app.add_middleware(TraceMiddleware)
        self._register_chat_routes(app)
        self._register_utility_routes(app)
        return app

    def _register_exception_handlers(self, app: FastAPI) -> None:
        @app.exception_handler(ValidationError)
        async def validation_handler(request: Request, exc: ValidationError):
            return _error(400, exc.message)

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            return _error(400, "Invalid request body")

        @app.exception_handler(SpecialistNotFoundError)
        async def specialist_not_found_handler(request: Request, exc: SpecialistNotFoundError):
            return _error(404, exc.message)

        @app.exception_handler(ChainExhaustedError)
        @app.exception_handler(RaceExhaustedError)
        async def exhausted_handler(request: Request, exc: SerginhoError):
            slog.error("Request failed", path=request.url.path, error=exc.to_dict())
            return _error(500, exc.message)

        @app.exception_handler(SerginhoError)
        async def serginho_error_handler(request: Request, exc: SerginhoError):
            logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc.message)
            return _error(500, exc.message)

        @app.exception_handler(StarletteHTTPException)
        async def http_error_handler(request: Request, exc: StarletteHTTPException):
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.detail},
                headers=getattr(exc, "headers", None),
            )

    def _register_chat_routes(self, app: FastAPI) -> None:
        @app.post("/chat")
        async def chat(payload: ChatRequest):
            message = self._require_message(payload)
            result = await self.orchestrator.handle_request(
                message,
                RequestOptions(session_id=payload.sessionId or DEFAULT_SESSION_ID, messages=payload.messages),
            )
            return result.to_dict()

        @app.post("/hybrid")
        async def hybrid(payload: ChatRequest):
            message = self._require_message(payload)
            result = await self.orchestrator.handle_request(
                message,
                RequestOptions(
                    session_id=payload.sessionId or HYBRID_SESSION_ID,
                    mode=RequestMode.HYBRID,
                    messages=payload.messages,
                ),
            )
            return result.to_dict()

        @app.post("/specialist-chat")
        async def specialist_chat(payload: ChatRequest):
            message = self._require_message(payload)
            if not payload.specialistId:
                # No persona requested: plain intelligent routing.
                result = await self.orchestrator.handle_request(
                    message,
                    RequestOptions(session_id=payload.sessionId or DEFAULT_SESSION_ID, messages=payload.messages),
                )
                return result.to_dict()

            specialist = self.specialists.get(payload.specialistId)
            result = await self.orchestrator.handle_request(
                message,
                RequestOptions(
                    session_id=f"specialist-{specialist.id}-{payload.sessionId or DEFAULT_SESSION_ID}",
                    system_prompt=specialist.system_prompt,
                    temperature=specialist.temperature,
                    messages=payload.messages,
                ),
            )
            body: dict[str, Any] = result.to_dict()
            body["specialist"] = specialist.summary()
            return body

    def _register_utility_routes(self, app: FastAPI) -> None:
        @app.get("/metrics")
        async def metrics():
            # Refreshes the active-session gauge before rendering.
            self.orchestrator.get_metrics()
            return Response(
                content=self.orchestrator.metrics.render_prometheus(),
                media_type=PROMETHEUS_CONTENT_TYPE,
            )

        @app.get("/stats")
        async def stats():
            return self.orchestrator.get_metrics().to_dict()

        @app.get("/health")
        async def health():
            return {
                "status": "ok",
                "version": self.settings.version,
                "environment": self.settings.environment,
                "build": {
                    "python_version": sys.version.split()[0],
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                },
                "providers": sorted(self.orchestrator.providers),
                "circuit_breaker": self.orchestrator.get_circuit_breaker_status(),
            }

    @staticmethod
    def _require_message(payload: ChatRequest) -> str:
        if not payload.message:
            raise ValidationError("Message is required")
        return payload.message


def create_app(
    orchestrator: Orchestrator | None = None,
    settings: Settings | None = None,
    specialists: SpecialistRegistry | None = None,
) -> FastAPI:
    return create_interface(orchestrator, settings, specialists).app


def create_interface(
    orchestrator: Orchestrator | None = None,
    settings: Settings | None = None,
    specialists: SpecialistRegistry | None = None,
) -> WebInterface:
    settings = settings or load_settings()
    if orchestrator is None:
        from serginho.core.factories import create_orchestrator

        orchestrator = create_orchestrator(settings)
    if specialists is None:
        if settings.web.specialists_file:
            specialists = SpecialistRegistry.from_yaml(settings.web.specialists_file)
        else:
            specialists = SpecialistRegistry()
    return WebInterface(orchestrator, settings, specialists)
