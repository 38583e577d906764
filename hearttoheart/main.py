"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from hearttoheart.api.middleware.error_handler import error_handler_middleware
from hearttoheart.api.middleware.latency_logging import latency_logging_middleware
from hearttoheart.api.routes import catalog, flows, generation, health, solutions
from hearttoheart.core.config import get_settings
from hearttoheart.services.catalog_service import verify_all_catalogs
from hearttoheart.services.flow_store import init_flow_store, shutdown_flow_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Verifies the static catalogs before serving and runs the flow store
    cleanup task for the lifetime of the app.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    # A malformed catalog is a build defect; refuse to start
    verify_all_catalogs()

    if not settings.generation_enabled:
        logger.warning("OPENAI_API_KEY is not set; generation endpoints will return fallback text")

    await init_flow_store()
    logger.info("Flow store initialized")

    yield

    await shutdown_flow_store()
    logger.info("Flow store shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="HeartToHeart API",
        description="Parenting assessments, strategy library and generated guidance",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last runs first: latency logging wraps the error handler
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Health routes at root level (no prefix)
    app.include_router(health.router)

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(catalog.router)
    api_v1_router.include_router(flows.router)
    api_v1_router.include_router(generation.router)
    api_v1_router.include_router(solutions.router)
    app.include_router(api_v1_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "hearttoheart.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
