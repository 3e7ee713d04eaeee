import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from linkboard.config import settings
from linkboard.db import create_tables, engine
from linkboard.exceptions import AppException, app_exception_handler, general_exception_handler
from linkboard.middleware.request_id import RequestIDMiddleware
from linkboard.rate_limit import limiter, rate_limit_exceeded_handler
from linkboard.routers import graphql_router, health
from linkboard.utils.cache import redis_client
from linkboard.utils.logging import configure_logging

# Register every table on Base.metadata before create_tables runs
import linkboard.models  # noqa: F401

configure_logging(logging.INFO)
logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Link aggregator API: accounts, sessions, posts and votes over GraphQL",
    version="1.0.0"
)

# Add rate limiting state
app.state.limiter = limiter

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

allowed_origins = settings.cors_origins_list
if settings.FRONTEND_URL and settings.FRONTEND_URL not in allowed_origins:
    allowed_origins.append(settings.FRONTEND_URL)

# Credentials must be allowed or browsers drop the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info(f"Starting {settings.APP_NAME}...")
    try:
        await create_tables()
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    await redis_client.aclose()
    await engine.dispose()
    logger.info("Connections closed")


# Register routers
app.include_router(health.router)
app.include_router(graphql_router.router)


@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} API", "graphql": "/graphql"}
