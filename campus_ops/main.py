"""
Campus Operations API - Main Application Entry Point

Backend for a campus operations hub:
- Facility catalogue with availability windows
- Bookings with a per-facility atomic conflict check (optimistic locking)
- Maintenance tickets with attachments, assignment and comments
- In-app notifications dispatched after each committed transition
- Role-based authorization over JWT bearer tokens
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from campus_ops.core.config import get_settings
from campus_ops.core.logging import setup_logging, get_logger
from campus_ops.core.metrics import metrics_endpoint
from campus_ops.api.router import api_router
from campus_ops.api.middleware import RequestLoggingMiddleware
from campus_ops.db.session import AsyncSessionLocal
from campus_ops.services.cache_service import get_redis, close_redis, get_cache_stats
from campus_ops.services.seed_service import run_startup_seed
from campus_ops.services.storage_service import upload_root

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
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    if settings.INITIAL_ADMIN_EMAIL or settings.SEED_DEMO_FACILITIES:
        async with AsyncSessionLocal() as db:
            await run_startup_seed(db)

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Facility bookings, maintenance tickets and notifications for campus operations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=upload_root()), name="uploads")


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
