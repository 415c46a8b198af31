"""
FlexFlow Gateway API Routes
Gateway-owned endpoints; the FlexFlow domain routes are mounted by the API service.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from flexflow_gateway import __version__
from flexflow_gateway.rl import RateLimiter
from .models import ErrorResponse, HealthResponse, PolicyInfo, PolicyListResponse

# Create API router; every route sits behind the rate limiting middleware
router = APIRouter(
    responses={
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    }
)


def get_rate_limiter(request: Request) -> Optional[RateLimiter]:
    """Dependency returning the limiter created at startup, or None when disabled"""
    return getattr(request.app.state, "rate_limiter", None)


@router.get("/", tags=["health"])
async def root():
    """Root endpoint"""
    return {"message": "Welcome to the FlexFlow API"}


@router.get("/health",
           response_model=HealthResponse,
           tags=["health"],
           summary="Health Check",
           description="Check if the gateway is running and healthy")
async def health_check(limiter: Optional[RateLimiter] = Depends(get_rate_limiter)):
    """Health check endpoint, never rate limited"""
    return HealthResponse(
        status="healthy",
        service="flexflow-gateway",
        version=__version__,
        rate_limiting=limiter is not None
    )


@router.get("/api/ratelimit/policies",
           response_model=PolicyListResponse,
           tags=["rate-limiting"],
           summary="Rate limit tiers",
           description="List the configured rate limit tiers and the route classes they guard")
async def list_policies(limiter: Optional[RateLimiter] = Depends(get_rate_limiter)):
    """Read-only view of the policy registry"""
    if limiter is None:
        return PolicyListResponse(enabled=False)

    registry = limiter.registry
    return PolicyListResponse(
        enabled=True,
        algorithm=limiter.algorithm.name,
        policies=[
            PolicyInfo(
                name=policy.name,
                max_requests=policy.max_requests,
                window_seconds=policy.window_seconds,
                message=policy.message,
                header_style=policy.header_style.value
            )
            for policy in registry
        ],
        routes={route_class: list(names) for route_class, names in registry.routes.items()}
    )
