"""
NEXIA API - Main Application Entry Point.

This module initializes and configures the FastAPI application behind NEXIA,
the digital-profile sharing app. It sets up logging, the service container,
middleware and routes.

Key Responsibilities:
- Configure and launch the FastAPI application.
- Build the `ServiceContainer` for the configured backend (`local` SQLModel
  database or the hosted Supabase project) on startup and close it on
  shutdown.
- Set up middleware for correlation IDs, request timing and security headers,
  and the exception handler that renders every `NexiaAPIException`.
- Mount the routers: health and monitoring, authentication, the authenticated
  `/api` surface and the public deep-link routes.

Architecture:
Routers stay thin and delegate to services; services reach external systems
only through providers. The container is an explicit object on `app.state`
rather than a set of module globals, so tests can build an application around
their own settings.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.auth_endpoints import router as auth_router
from api.dependencies import build_container
from api.endpoints import router
from api.health_router import health_router, monitoring_router
from api.links_router import links_router
from core.config import Settings, get_settings
from core.exceptions import NexiaAPIException
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    PerformanceMiddleware,
    SecurityHeadersMiddleware,
    nexia_exception_handler,
)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging()
        logger = get_logger("api.startup")

        app.state.container = await build_container(settings)
        logger.info(f"NEXIA API started ({settings.environment}, {settings.backend} backend)")
        yield

        # Cleanup on shutdown
        logger.info("Shutting down NEXIA API")
        await app.state.container.close()
        app.state.container = None
        logger.info("Cleanup completed")

    app = FastAPI(
        title="NEXIA API",
        description="Digital profiles, share links, QR codes and an AI assistant",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(NexiaAPIException, nexia_exception_handler)

    # CORS middleware (required for the web and Expo clients)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PerformanceMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    # added last so it runs first and every log line carries the id
    app.add_middleware(CorrelationMiddleware)

    # Health routers FIRST (no authentication required for monitoring)
    app.include_router(health_router)
    app.include_router(monitoring_router)

    app.include_router(auth_router)
    app.include_router(router)
    app.include_router(links_router)

    if settings.backend == "local":
        # the directory is created on first upload
        app.mount(
            "/media",
            StaticFiles(directory=settings.media_dir, check_dir=False),
            name="media",
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
