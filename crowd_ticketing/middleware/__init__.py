"""Middleware components for the Crowd Ticketing platform."""

from .error_handler import ErrorHandlerMiddleware
from .rate_limiter import RateLimiterMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RateLimiterMiddleware",
    "LoggingMiddleware"
]
