"""
Event Organizer API - Main Application Entry Point

Backend for the event organizer mobile client:
- Shared event list with case-insensitive search
- Per-user favorites reconciled from two live document feeds
- Event create/edit/delete with form validation and ownership policy
- Live dashboard over WebSocket
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from organizer.core.config import get_settings
from organizer.core.logging import setup_logging, get_logger
from organizer.core.metrics import metrics_endpoint
from organizer.api.errors import register_error_handlers
from organizer.api.router import api_router, ws_router
from organizer.api.middleware import RequestLoggingMiddleware
from organizer.infrastructure.redis_client import RedisClient
from organizer.services.store_factory import create_document_store

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        store_backend=settings.STORE_BACKEND,
    )

    app.state.store = create_document_store()

    yield

    await app.state.store.close()
    await RedisClient.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event organizer API with live favorites and search",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(api_router)
app.include_router(ws_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "store": settings.STORE_BACKEND,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
