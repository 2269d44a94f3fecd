"""
Rate limiting middleware with Redis backend.
"""

import logging
import time
from typing import Dict, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..cache import get_cache
from ..utils.exceptions import RateLimitError
from ..utils.logging_config import log_security_event
from .logging import get_client_ip

logger = logging.getLogger(__name__)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware using a sliding window per client IP."""

    def __init__(
        self,
        app,
        enabled: bool = True,
        default_limit: int = 100,
        default_window: int = 60,
        burst_limit: int = 20,
        burst_window: int = 1
    ):
        super().__init__(app)
        self.enabled = enabled
        self.default_limit = default_limit
        self.default_window = default_window
        self.burst_limit = burst_limit
        self.burst_window = burst_window
        self.cache = get_cache()

        self.endpoint_limits: Dict[str, Dict[str, int]] = {
            "/api/auth/login": {"limit": 5, "window": 300},
            "/api/auth/register": {"limit": 3, "window": 300},
            "/api/orders": {"limit": 10, "window": 60},
            "/api/monetize/apply": {"limit": 5, "window": 3600},
        }

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or not self.cache.available or not request.url.path.startswith("/api"):
            return await call_next(request)

        client_ip = get_client_ip(request)

        exceeded, retry_after = await self._check(
            f"rate_limit:burst:{client_ip}", self.burst_limit, self.burst_window
        )
        if exceeded:
            return self._create_rate_limit_response(request, client_ip, self.burst_limit, self.burst_window, retry_after)

        endpoint = self._get_endpoint_pattern(request)
        limit_config = self.endpoint_limits.get(endpoint, {
            "limit": self.default_limit,
            "window": self.default_window
        })
        exceeded, retry_after = await self._check(
            f"rate_limit:{endpoint}:ip:{client_ip}", limit_config["limit"], limit_config["window"]
        )
        if exceeded:
            return self._create_rate_limit_response(
                request, client_ip, limit_config["limit"], limit_config["window"], retry_after
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit_config["limit"])
        response.headers["X-RateLimit-Window"] = str(limit_config["window"])
        return response

    def _get_endpoint_pattern(self, request: Request) -> str:
        """Stricter limits only apply to writes."""
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            for pattern in self.endpoint_limits:
                if request.url.path.startswith(pattern):
                    return pattern
        return "default"

    async def _check(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        now = time.time()
        current_count = await self.cache.sliding_window_hit(key, now, window)
        if current_count is None or current_count < limit:
            return False, 0

        oldest = await self.cache.oldest_score(key)
        retry_after = max(1, int((oldest or now) + window - now))
        return True, retry_after

    def _create_rate_limit_response(
        self, request: Request, client_ip: str, limit: int, window: int, retry_after: int
    ) -> JSONResponse:
        error = RateLimitError(limit, window, retry_after)
        log_security_event(
            "rate_limit_exceeded",
            {"client_ip": client_ip, "path": request.url.path, "limit": limit, "window": window},
        )

        return JSONResponse(
            status_code=429,
            content={"error": error.to_dict()},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Window": str(window)
            }
        )
