"""
Catalog Tree Service - Main FastAPI Application.

Serves the lazily populated catalog navigation tree
(domain -> technology -> tutorial -> lesson) for the learning platform's
sidebar. Each visitor session owns its own tree; catalog data is fetched
from the catalog backend on demand.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api_client import CatalogGateway, CatalogServiceClient
from .config import Settings, settings as default_settings
from .domain.exceptions import CatalogTreeException, UnknownLevelError
from .logging_config import get_logger, setup_logging
from .metrics import metrics_endpoint
from .middleware import RequestLoggingMiddleware
from .models import HealthResponse
from .routers import tree_router
from .tree.sessions import TreeSessionRegistry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown events for the application.
    """
    config: Settings = app.state.settings

    logger.info("Starting Catalog Tree Service")
    logger.info(
        "Configuration loaded",
        service_name=config.APP_NAME,
        debug_mode=config.DEBUG,
        log_level=config.LOG_LEVEL,
        catalog_api_url=config.CATALOG_API_URL,
        request_timeout=config.REQUEST_TIMEOUT,
        auto_expand_default_path=config.AUTO_EXPAND_DEFAULT_PATH,
    )

    is_healthy = await _gateway_healthy(app.state.gateway)
    if is_healthy:
        logger.info("Catalog backend connectivity verified", catalog_api_url=config.CATALOG_API_URL)
    else:
        logger.error(
            "Catalog backend is not responding",
            catalog_api_url=config.CATALOG_API_URL,
            impact="Trees will show the root error state until the backend recovers",
        )

    yield

    logger.info("Shutting down Catalog Tree Service")
    app.state.tree_sessions.clear()
    close = getattr(app.state.gateway, "close", None)
    if close is not None:
        await close()
    logger.info("HTTP clients closed")


async def _gateway_healthy(gateway: CatalogGateway) -> bool:
    health_check = getattr(gateway, "health_check", None)
    if health_check is None:
        return True
    return await health_check()


def create_app(
    gateway: Optional[CatalogGateway] = None,
    settings: Optional[Settings] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        gateway: Catalog data source; defaults to an HTTP client for the
            configured backend
        settings: Settings to use; defaults to the environment settings
        configure_logging: Install the structlog configuration

    Returns:
        Configured FastAPI application
    """
    config = settings or default_settings

    if configure_logging:
        setup_logging(
            log_level=config.LOG_LEVEL,
            service_name="catalog-tree-service",
            use_json=not config.DEBUG,
        )

    app = FastAPI(
        title="Catalog Tree Service",
        description="Lazily loaded catalog navigation tree",
        version="1.0.0",
        docs_url="/api/docs" if config.DEBUG else None,
        redoc_url="/api/redoc" if config.DEBUG else None,
        lifespan=lifespan,
    )

    catalog = gateway if gateway is not None else CatalogServiceClient(settings=config)
    app.state.settings = config
    app.state.gateway = catalog
    app.state.tree_sessions = TreeSessionRegistry(catalog, config)

    app.add_middleware(RequestLoggingMiddleware, slow_request_threshold_ms=1000.0)
    app.include_router(tree_router)

    @app.exception_handler(UnknownLevelError)
    async def unknown_level_handler(request: Request, exc: UnknownLevelError):
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "unknown_level",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(CatalogTreeException)
    async def catalog_tree_exception_handler(request: Request, exc: CatalogTreeException):
        logger.error(
            "Unhandled catalog tree error",
            path=request.url.path,
            method=request.method,
            error=exc.message,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "catalog_tree_error",
                "message": exc.message,
            },
        )

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="Check service health and the catalog backend",
    )
    async def health_check():
        backend_healthy = await _gateway_healthy(app.state.gateway)
        return {
            "status": "healthy" if backend_healthy else "degraded",
            "service": "catalog-tree-service",
            "dependencies": {
                "catalog_service": "healthy" if backend_healthy else "unhealthy",
            },
            "sessions": len(app.state.tree_sessions),
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return await metrics_endpoint()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
