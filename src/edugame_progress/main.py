"""FastAPI application entry point and composition root."""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from edugame_progress.api.routes import router
from edugame_progress.api.websocket import handle_progress_websocket
from edugame_progress.config import Settings, get_settings
from edugame_progress.progress.store import ProgressStore
from edugame_progress.storage.key_value import JsonKeyValueStore

# Configure structlog based on environment
is_production = os.getenv("ENV", "development").lower() == "production"

if is_production:
    # Production: JSON format for machine parsing
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
else:
    # Development: console format for human readability
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_store(settings: Settings) -> ProgressStore:
    """Build the progress store for the configured profile."""
    return ProgressStore(
        JsonKeyValueStore(settings.profile_path),
        auto_adjust_default=settings.auto_adjust_default,
        bootstrap_games=settings.bootstrap_games,
    )


def create_app(settings: Settings, store: ProgressStore | None = None) -> FastAPI:
    """Assemble the application around one explicitly owned store."""
    app = FastAPI(title="Edugame Progress", version="0.1.0")
    app.state.settings = settings
    app.state.store = store if store is not None else create_store(settings)
    app.include_router(router)

    @app.middleware("http")
    async def auth_middleware(request: Request, call_next):
        """Optional APP_SECRET authentication middleware."""
        if not settings.app_secret or request.url.path == "/api/health":
            return await call_next(request)
        if request.headers.get("X-App-Secret", "") != settings.app_secret:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        return await call_next(request)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """Progress notification stream."""
        if settings.app_secret and websocket.headers.get("X-App-Secret", "") != settings.app_secret:
            await websocket.close(code=1008, reason="Unauthorized")
            return
        await handle_progress_websocket(websocket, app.state.store)

    return app


def main() -> None:
    """Run the application."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
