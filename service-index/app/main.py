"""Index service main application."""

import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import structlog

from .api.routes import index_service_error_handler, router as api_router
from .registry.index_manager import IndexManager
from .runtime.activation import get_listen_fd
from .runtime.metrics import MetricsCollector
from libs.common.config import IndexServiceConfig
from libs.common.errors import IndexServiceError
from libs.common.logging import configure_logging
from libs.index_store.base import SearchEngine
from libs.index_store.factory import create_search_engine
from libs.index_store.location_cache import LocationCache, create_location_cache

logger = structlog.get_logger("index_service")

SERVICE_NAME = "index-service"

# Prefix of the health and metrics endpoints
OPERATIONS_PREFIX = "/_service"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Builds the registry and replays the location cache before the server
    accepts requests; releases every index on shutdown.
    """
    # Startup
    config = app.state.config or IndexServiceConfig()
    app.state.config = config
    configure_logging(SERVICE_NAME, config.ml_log_level, config.ml_log_format)

    logger.info("Starting index service", env=config.ml_env)

    if app.state.location_cache is None:
        app.state.location_cache = create_location_cache(config)
    if app.state.search_engine is None:
        app.state.search_engine = create_search_engine(config)

    app.state.index_manager = IndexManager(app.state.search_engine, app.state.metrics_collector)
    app.state.index_manager.restore(app.state.location_cache)

    logger.info("Index service started successfully", open_indices=len(app.state.index_manager.names()))

    yield

    # Shutdown
    logger.info("Shutting down index service")
    app.state.index_manager.close()
    logger.info("Index service shutdown complete")


def create_app(
    config: Optional[IndexServiceConfig] = None,
    search_engine: Optional[SearchEngine] = None,
    location_cache: Optional[LocationCache] = None,
    metrics_collector: Optional[MetricsCollector] = None
) -> FastAPI:
    """Create the FastAPI application.

    Parameters
    - config: Service configuration (read from the environment when omitted)
    - search_engine: Engine backend override (built from config when omitted)
    - location_cache: Location cache override (built from config when omitted)
    - metrics_collector: Metrics collector override
    """
    app = FastAPI(
        title="Index Service",
        description="Lifecycle and querying of named full-text indices",
        version="0.1.0",
        lifespan=lifespan
    )

    app.state.config = config
    app.state.search_engine = search_engine
    app.state.location_cache = location_cache
    app.state.metrics_collector = metrics_collector or MetricsCollector(SERVICE_NAME)

    app.add_exception_handler(IndexServiceError, index_service_error_handler)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Collect metrics for HTTP requests, labelled by route template."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            duration=duration
        )
        return response

    # Two path segments, so no index route can match these
    @app.get(f"{OPERATIONS_PREFIX}/health")
    async def health_check():
        """Health check endpoint."""
        index_manager = getattr(app.state, "index_manager", None)
        if index_manager is None:
            return JSONResponse(
                status_code=503,
                content={"status": "starting", "service": SERVICE_NAME}
            )
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "open_indices": len(index_manager.names())
        }

    @app.get(f"{OPERATIONS_PREFIX}/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")

    app.include_router(api_router)

    return app


app = create_app()


def run() -> None:
    """Serve the application.

    Uses the socket handed over by systemd socket activation when present,
    otherwise binds ``ML_INDEX_HOST:ML_INDEX_PORT``.
    """
    config = IndexServiceConfig()
    application = create_app(config)
    log_level = config.ml_log_level.lower()

    fd = get_listen_fd()
    if fd is not None:
        logger.info("Using socket from systemd activation", fd=fd)
        uvicorn.run(application, fd=fd, log_level=log_level)
    else:
        uvicorn.run(
            application,
            host=config.ml_index_host,
            port=config.ml_index_port,
            log_level=log_level
        )


if __name__ == "__main__":
    run()
