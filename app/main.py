"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dependencies import cleanup_dependencies
from app.api.routes import router
from app.config import get_settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(
        f"Retries: {settings.max_retries}, backoff {settings.retry_base_delay}s"
        f"-{settings.retry_max_delay}s, {settings.requests_per_second} req/s per host"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await cleanup_dependencies()
    logger.info("Cleanup complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Multi-network Safe treasury explorer. Discovers the networks a Safe "
            "is deployed on and turns its history into timelines, flow graphs "
            "and summaries."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )

    allowed_origins = ["*"]
    if settings.allowed_origins:
        allowed_origins = [
            origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()
        ]

    # credentials are never sent with a wildcard origin
    allow_credentials = "*" not in allowed_origins
    if not allow_credentials and not settings.debug:
        logger.warning("CORS: Using wildcard origins in production is not recommended")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.include_router(router)

    @app.get("/api", tags=["root"])
    async def api_info() -> dict[str, str]:
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": f"{settings.api_prefix}/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
