"""Rate limiting middleware for FastAPI."""

import logging
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import CounterStoreError
from .headers import build_quota_headers, build_rejection_headers
from .keys import RequestDescriptor
from .limiter import RateLimiter

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware that runs every request through the tiered rate limiter."""

    def __init__(
        self,
        app,
        limiter: Optional[RateLimiter] = None,
        exempt_paths: Tuple[str, ...] = ("/health",),
        trust_forwarded_for: bool = False
    ):
        """Initialize rate limiting middleware."""
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = tuple(exempt_paths)
        self.trust_forwarded_for = trust_forwarded_for

        # If no limiter provided, rate limiting is effectively disabled
        if self.limiter is None:
            logger.info("Rate limiting middleware initialized but disabled (no limiter provided)")
        else:
            logger.info(
                "Rate limiting middleware initialized",
                extra={
                    "exempt_paths": self.exempt_paths,
                    "algorithm": self.limiter.algorithm.name,
                    "policies": {p.name: f"{p.max_requests}/{p.window_seconds}s" for p in self.limiter.registry},
                    "trust_forwarded_for": self.trust_forwarded_for
                }
            )

    async def dispatch(self, request: Request, call_next):
        """Apply rate limiting to the request."""
        if self.limiter is None:
            return await call_next(request)

        request_path = request.url.path
        if self._is_exempt(request_path):
            return await call_next(request)

        descriptor = RequestDescriptor(
            client_address=self._client_address(request),
            route_class=self.limiter.registry.classify(request_path),
            path=request_path
        )

        try:
            result = self.limiter.check(descriptor)
        except CounterStoreError:
            logger.error(
                "Rate limiter store failure",
                extra={"path": request_path, "method": request.method},
                exc_info=True
            )
            raise

        if not result.admitted:
            return JSONResponse(
                status_code=429,
                content={"error": result.policy.message},
                headers=build_rejection_headers(result.evaluated, result.now)
            )

        response = await call_next(request)
        response.headers.update(build_quota_headers(result.evaluated, result.now))
        return response

    def _is_exempt(self, path: str) -> bool:
        return any(path == exempt or path.startswith(exempt.rstrip("/") + "/") for exempt in self.exempt_paths)

    def _client_address(self, request: Request) -> Optional[str]:
        """Client address, from X-Forwarded-For when the proxy is trusted."""
        if self.trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                first = forwarded.split(",")[0].strip()
                if first:
                    return first

        client = request.client
        return client.host if client else None
