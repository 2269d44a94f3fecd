"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crowd_ticketing.config import settings
from crowd_ticketing.api import api_router
from crowd_ticketing.cache import get_cache
from crowd_ticketing.database import init_database, close_database
from crowd_ticketing.middleware import (
    ErrorHandlerMiddleware,
    RateLimiterMiddleware,
    LoggingMiddleware
)
from crowd_ticketing.utils.logging_config import setup_logging

setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file=settings.log_file or ("logs/crowd_ticketing.log" if settings.environment == "production" else None),
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Crowd Ticketing platform")
    await init_database()
    yield
    logger.info("Shutting down Crowd Ticketing platform")
    await close_database()
    logger.info("Database connections closed")


app = FastAPI(
    title="Crowd Ticketing API",
    description="""
    ## Crowd Ticketing

    Event discovery and ticketing: organizers publish events with ticket
    types, buyers check out orders, and influencers and venues apply for
    partnerships that admins review.

    ### Authentication

    Register or log in to receive a bearer token and send it as
    `Authorization: Bearer <token>`. Every token belongs to a login session;
    logging out or revoking sessions invalidates it.

    ### Error Handling

    Errors share one shape:

    ```json
    {
      "error": {
        "error_code": "ERROR_CODE",
        "message": "Human readable error message",
        "details": {"field": "Additional error context"},
        "suggestions": ["Helpful suggestions"]
      }
    }
    ```

    ### Ticket availability

    Ticket counts are reserved with conditional updates, so an order either
    gets all of its tickets or fails with 409 and sells nothing.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Registration, login and session management"},
        {"name": "user-management", "description": "Admin user management"},
        {"name": "organizers", "description": "Organizer profiles"},
        {"name": "events", "description": "Event listings and ticket types"},
        {"name": "orders", "description": "Checkout and orders"},
        {"name": "monetize", "description": "Partnership applications and admin review"},
        {"name": "health", "description": "System health endpoints"},
    ],
    lifespan=lifespan,
)

# Middleware order matters: the last one added runs first.

app.add_middleware(
    LoggingMiddleware,
    log_requests=settings.enable_request_logging,
    log_responses=settings.enable_request_logging,
)

app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

app.add_middleware(
    RateLimiterMiddleware,
    enabled=settings.enable_rate_limiting,
    default_limit=settings.default_rate_limit,
    default_window=settings.default_rate_window,
    burst_limit=settings.burst_rate_limit,
    burst_window=settings.burst_rate_window
)

if settings.debug:
    cors_origins = ["*"]
    cors_allow_credentials = False  # wildcard origins cannot carry credentials
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Crowd Ticketing API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness probe; reports whether the cache is connected."""
    return {
        "status": "healthy",
        "service": "crowd-ticketing",
        "cache": "connected" if get_cache().available else "disabled",
    }
