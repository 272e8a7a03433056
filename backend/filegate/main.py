"""
FastAPI application entry point.
Sets up the API with lifespan events for object store initialization.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from filegate.config import settings
from filegate.api.router import api_router
from filegate.errors import RouteNotFound, register_exception_handlers
from filegate.middleware.metrics_middleware import MetricsMiddleware
from filegate.storage import build_object_store
from filegate.utils.logging import configure_logging

logger = logging.getLogger(__name__)

INDEX_HTML = (Path(__file__).parent / "static" / "index.html").read_text(encoding="utf-8")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, build the shared object store
    - Shutdown: release the store's client
    """
    configure_logging('filegate', settings.log_level)

    # An object store injected before startup (tests) takes precedence
    if getattr(app.state, "object_store", None) is None:
        app.state.object_store = build_object_store(settings)
    store = app.state.object_store
    logger.info(f"Object store ready: {store.backend_name}")

    yield

    await store.close()


# Create FastAPI app
app = FastAPI(
    title="filegate",
    description="Streaming HTTP gateway over an object store",
    version="0.1.0",
    lifespan=lifespan,
    # Paths match exactly; "/upload/" is a 404, not a redirect
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)

if settings.metrics_enabled:
    app.add_middleware(MetricsMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index():
    """Upload page."""
    return HTMLResponse(INDEX_HTML)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.metrics_enabled:
        raise RouteNotFound("/metrics")
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
