"""FastAPI application for the transcript bridge.

This module provides:
- POST <callback path> for remote operation callbacks
- GET /health for liveness probes
- Startup hooks: webhook registration and storage directory creation
- Error handling
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from transcript_bridge.config import Settings
from transcript_bridge.operations import ArtifactDownloader, OperationInitiator
from transcript_bridge.service import AudioServiceClient
from transcript_bridge.webhooks.dispatcher import WebhookDispatcher
from transcript_bridge.webhooks.registrar import WebhookRegistrar

logger = structlog.get_logger(__name__)


# ============================================================================
# Response Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Error body returned for internal failures."""

    code: int = Field(..., description="HTTP status code")
    err: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Liveness probe response."""

    status: str = Field(default="ok", description="Service status")


# ============================================================================
# Application Factory
# ============================================================================


def callback_path(callback_url: str) -> str:
    """Route path derived from the public callback URL."""
    return urlparse(callback_url).path or "/"


def create_app(
    settings: Settings,
    callback_url: str,
    *,
    service: AudioServiceClient | None = None,
    dispatcher: WebhookDispatcher | None = None,
    registrar: WebhookRegistrar | None = None,
    register_webhook: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings.
        callback_url: Public URL the remote service delivers callbacks to.
        service: Remote service client (built from settings if not provided).
        dispatcher: Callback dispatcher (built from the service if not provided).
        registrar: Webhook registrar (built from the service if not provided).
        register_webhook: Ensure the webhook subscription on startup.

    Returns:
        Configured FastAPI application.
    """
    service = service or AudioServiceClient(settings)
    downloader: ArtifactDownloader | None = None
    if dispatcher is None:
        downloader = ArtifactDownloader(service, settings)
        dispatcher = WebhookDispatcher(
            settings,
            OperationInitiator(service, settings),
            downloader,
        )
    registrar = registrar or WebhookRegistrar(service, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
        """Application lifespan handler."""
        if register_webhook:
            logger.info("ensuring_webhook", url=callback_url)
            await registrar.ensure_webhook(callback_url)

        if settings.local_storage_enabled:
            settings.storage_dir.mkdir(parents=True, exist_ok=True)
            logger.info("storage_ready", path=str(settings.storage_dir))

        logger.info("application_starting", path=callback_path(callback_url))

        yield

        logger.info("application_shutting_down")
        if downloader is not None:
            await downloader.close()
        await service.close()

    app = FastAPI(
        title="Transcript Bridge",
        version="1.0.0",
        description="Receives operation callbacks and downloads classified transcripts.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception  # noqa: ARG001
    ) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(code=500, err=str(exc)).model_dump(),
        )

    register_routes(app, callback_path(callback_url))

    return app


def register_routes(app: FastAPI, path: str) -> None:
    """Register all routes on the application.

    Args:
        app: FastAPI application with a dispatcher in ``app.state``.
        path: Path the callback handler is mounted at.
    """

    async def receive_callback(request: Request) -> Response:
        """Handle an operation callback from the remote service."""
        dispatcher: WebhookDispatcher = request.app.state.dispatcher
        body = await request.body()
        result = await dispatcher.handle(body, request.headers)

        if result.json_body is not None:
            return JSONResponse(
                status_code=result.status_code,
                content=result.json_body,
                headers=result.headers,
            )
        return Response(
            content=result.content,
            status_code=result.status_code,
            headers=result.headers,
            media_type="text/plain",
        )

    app.add_api_route(
        path,
        receive_callback,
        methods=["POST"],
        tags=["Webhooks"],
        summary="Receive operation callbacks",
        include_in_schema=True,
    )

    @app.get("/health", response_model=HealthResponse, tags=["Health"], summary="Health check")
    async def health_check() -> HealthResponse:
        """Simple health check endpoint."""
        return HealthResponse()
