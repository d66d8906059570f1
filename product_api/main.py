# ============================================
# product_api/main.py: Product API FastAPI App
# ============================================
# create_app() wires settings, the Mongo client, middleware, error
# handlers and routes. Settings are loaded once and kept on app.state.

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.routing import Match

from . import __version__
from .config import Settings
from .database import (
    close_mongo_connection,
    connect_to_mongo,
    ensure_indexes,
    get_collection,
    get_products_collection,
)
from .errors import register_error_handlers
from .logger import configure_logging, get_logger
from .routes import router as products_router

logger = get_logger("http")

SERVICE_NAME = "Product API"

# ── Prometheus Metrics ────────────────────────────────────────
REQUEST_COUNT = Counter(
    'product_api_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)
REQUEST_LATENCY = Histogram(
    'product_api_request_latency_seconds',
    'Request latency in seconds',
    ['endpoint']
)


def endpoint_label(request: Request) -> str:
    """Route template for metric labels, so /api/products/{product_id} is one series."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
    return "unmatched"


def create_app(settings: Optional[Settings] = None, mongo_client=None) -> FastAPI:
    """Build the application.

    ``mongo_client`` replaces the Motor client created at startup; the
    caller then owns its lifecycle.
    """
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = mongo_client
        if client is None:
            client = await connect_to_mongo(settings)
        else:
            await ensure_indexes(get_collection(client, settings))
        app.state.collection = get_collection(client, settings)
        yield
        if mongo_client is None:
            await close_mongo_connection(client)

    app = FastAPI(
        title="product-api",
        description="Product catalogue API: FastAPI + MongoDB",
        version=__version__,
        # Disable Swagger UI in production
        docs_url="/docs" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = time.time()
        # Unhandled errors are rendered outside this middleware as a 500
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.time() - start
            endpoint = endpoint_label(request)
            REQUEST_COUNT.labels(request.method, endpoint, status_code).inc()
            REQUEST_LATENCY.labels(endpoint).observe(duration)
            logger.info(
                "%s %s -> %s (%.1f ms)",
                request.method, request.url.path, status_code, duration * 1000,
            )

    register_error_handlers(app)
    app.include_router(products_router)

    # ── Platform Endpoints ────────────────────────────────────
    @app.get("/", tags=["platform"])
    async def root():
        return {"message": "Welcome to the Product API! Go to /api/products to see all products."}

    @app.get("/health", tags=["platform"])
    async def health():
        """Liveness probe; does not touch the database."""
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    @app.get("/ready", tags=["platform"])
    async def ready(collection=Depends(get_products_collection)):
        """Readiness probe. Pings MongoDB to confirm the service is fully operational."""
        try:
            await collection.database.command("ping")
        except Exception as e:
            logger.warning("Readiness check failed: %s", e)
            return JSONResponse(
                status_code=503,
                content={"status": "error", "service": SERVICE_NAME, "db": str(e)}
            )
        return {"status": "ok", "service": SERVICE_NAME, "db": "connected"}

    @app.get("/metrics", tags=["platform"])
    async def metrics():
        """Prometheus scrape endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
