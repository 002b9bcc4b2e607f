"""Main FastAPI application for the watering scale service."""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi_cache import FastAPICache
from fastapi_cache.backends import Backend
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.backends.redis import RedisBackend

from watering_scale.api.endpoints import router as watering_router
from watering_scale.config import CACHE_BACKEND, CACHE_PREFIX, DEBUG, HOST, PORT, REDIS_URL
from watering_scale.dependencies import create_watering_service
from watering_scale.errors import ConfigurationError
from watering_scale.logging_config import configure_logging
from watering_scale.watering.service import WateringService

configure_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "Watering Scale Service"
SERVICE_VERSION = "0.1.0"


def create_cache_backend(kind: str = CACHE_BACKEND) -> Backend:
    """Create the fastapi-cache backend named in the configuration."""
    if kind == "redis":
        logger.info(f"Connecting to Redis at {REDIS_URL}")
        return RedisBackend(redis.from_url(REDIS_URL))
    if kind == "memory":
        return InMemoryBackend()
    raise ConfigurationError(f"Unknown cache backend '{kind}'")


def create_app(
    service: Optional[WateringService] = None,
    cache_backend: Optional[Backend] = None
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service: Watering service to use (built from configuration if None)
        cache_backend: fastapi-cache backend (built from configuration if None)

    Returns:
        Configured FastAPI application instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        try:
            backend = cache_backend or create_cache_backend()
            FastAPICache.init(backend, prefix=CACHE_PREFIX)
            logger.info(f"Cache initialized with {type(backend).__name__}")

            app.state.watering_service = service or create_watering_service(backend)
            logger.info(f"Starting {SERVICE_NAME}")
        except Exception as e:
            logger.error(f"Startup error: {e}")
            logger.error(traceback.format_exc())
            raise

        try:
            yield
        finally:
            logger.info(f"Shutting down {SERVICE_NAME}")
            await app.state.watering_service.aclose()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Calculates watering scales for irrigation controllers from weather data",
        version=SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["root"])
    async def root() -> PlainTextResponse:
        """Service banner, sent with a 503 status to keep crawlers away."""
        return PlainTextResponse(f"{SERVICE_NAME} v{SERVICE_VERSION}", status_code=503)

    app.include_router(watering_router)

    return app


# Create app instance for uvicorn
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    logger.info(f"Starting server on {HOST}:{PORT}")
    uvicorn.run(
        "watering_scale.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
        log_level="info" if not DEBUG else "debug"
    )


if __name__ == "__main__":
    main()
