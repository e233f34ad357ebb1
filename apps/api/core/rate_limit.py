"""
Rate limiting middleware.

Fixed-window counters in Redis, keyed per caller and endpoint prefix.
Fails open when Redis is unavailable.
"""
import time
import logging
from typing import Dict, Optional, Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from core.config import settings
from core.cache import get_redis_client
from core.security import decode_access_token

logger = logging.getLogger(__name__)

EXEMPT_PATHS = ("/health", "/health/detailed", "/ping", "/docs", "/openapi.json", "/redoc")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        default_limit: int = 60,
        window: int = 60,
        endpoint_limits: Optional[Dict[str, int]] = None,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.window = window
        # Prefix -> requests per window. Batch ingestion hits fetch-game once per date.
        self.endpoint_limits = endpoint_limits or {
            "/v1/admin": settings.RATE_LIMIT_ADMIN_PER_MINUTE,
            "/v1/cron": 10,
        }

    async def dispatch(self, request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        caller = self._get_caller(request)
        limit, bucket = self._get_endpoint_limit(request.url.path)

        allowed, remaining, reset_time = self._check_rate_limit(caller, bucket, limit)

        if not allowed:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded",
                    "limit": limit,
                    "window": self.window,
                    "reset_at": reset_time
                },
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": str(remaining),
                    "X-RateLimit-Reset": str(reset_time),
                    "Retry-After": str(max(0, int(reset_time - time.time())))
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)
        return response

    def _get_caller(self, request: Request) -> str:
        """User id from a valid bearer token, else client IP."""
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_access_token(auth_header.split(" ", 1)[1])
            if payload and payload.get("sub"):
                return f"user:{payload.get('sub')}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _get_endpoint_limit(self, path: str) -> Tuple[int, str]:
        for prefix, limit in self.endpoint_limits.items():
            if path.startswith(prefix):
                return limit, prefix
        return self.default_limit, path

    def _check_rate_limit(self, caller: str, bucket: str, limit: int) -> Tuple[bool, int, int]:
        """Returns (allowed, remaining, reset_time)."""
        redis_client = get_redis_client()
        now = int(time.time())

        if not redis_client:
            return True, limit, now + self.window

        key = f"rate_limit:{caller}:{bucket}"

        try:
            count = redis_client.incr(key)
            if count == 1:
                redis_client.expire(key, self.window)
            ttl = redis_client.ttl(key)
            reset_time = now + (ttl if ttl > 0 else self.window)
            if count > limit:
                return False, 0, reset_time
            return True, max(0, limit - count), reset_time
        except Exception as e:
            logger.error(f"Rate limit check error: {e}")
            return True, limit, now + self.window
