"""
FastAPI API Server.

Receives Vapi webhooks, logs call results to Google Sheets, starts and
ends phone calls, and streams live events to browser viewers.

Start with:
    uvicorn call_logger.api_server:app --reload --port 3000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from call_logger.api.calls import router as calls_router
from call_logger.api.deps import AppServices, build_services
from call_logger.api.frontend import router as frontend_router
from call_logger.api.live import router as live_router
from call_logger.api.middleware import RequestIdMiddleware
from call_logger.api.sheets import router as sheets_router
from call_logger.api.webhooks import router as webhooks_router
from call_logger.config import get_settings
from call_logger.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Build the application around ``services`` (built from settings if omitted)."""
    services = services or build_services(get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        settings = services.settings
        logger.info(
            "api_server_starting",
            environment=settings.environment.value,
            phone_calls=settings.phone_calls_configured,
            pbx=settings.pbx_configured,
            sheets=settings.sheets_configured,
        )
        yield
        await services.registry.close()
        logger.info("api_server_stopping")

    app = FastAPI(
        title="Call Result Logger API",
        description="Vapi call outcomes normalized into Google Sheets",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=services.settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(frontend_router)
    app.include_router(calls_router)
    app.include_router(sheets_router)
    app.include_router(webhooks_router)
    app.include_router(live_router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "call-result-logger"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("call_logger.api_server:app", host="0.0.0.0", port=get_settings().port)
