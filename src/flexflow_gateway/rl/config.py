"""Rate limiting configuration and factory."""

from typing import List, Optional

from pydantic import BaseModel, Field

from flexflow_gateway.core.config import Settings, get_settings
from .algorithms import get_algorithm
from .clock import Clock
from .exceptions import RateLimitConfigurationError
from .limiter import RateLimiter
from .policy import RatePolicy, make_default_registry
from .store import MemoryCounterStore


class TierConfig(BaseModel):
    """Configuration of one rate limit tier."""

    name: str = Field(..., min_length=1, description="Tier name")
    max_requests: int = Field(..., ge=1, description="Admitted requests per window per client")
    window_seconds: float = Field(default=60, gt=0, description="Window size in seconds")
    message: str = Field(default="Too many requests, please try again later.", description="Rejection message")
    header_style: str = Field(default="draft-8", pattern="^(draft-8|draft-6|off)$", description="Quota header style")

    def to_policy(self) -> RatePolicy:
        return RatePolicy(
            name=self.name,
            max_requests=self.max_requests,
            window_seconds=self.window_seconds,
            message=self.message,
            header_style=self.header_style
        )


class RateLimitConfig(BaseModel):
    """Rate limiting configuration model."""

    enabled: bool = Field(default=True, description="Enable rate limiting")
    algorithm: str = Field(default="fixed_window", description="fixed_window or sliding_log")
    backend: str = Field(default="memory", description="Counter store type")
    sweep_interval: int = Field(default=1000, ge=0, description="Evict stale counters every N updates")
    trust_forwarded_for: bool = Field(default=False, description="Use X-Forwarded-For for the client address")
    exempt_paths: List[str] = Field(default_factory=lambda: ["/health"], description="Paths never rate limited")
    tiers: List[TierConfig] = Field(
        default_factory=lambda: [
            TierConfig(name="global", max_requests=300, message="Too many requests, please try again later."),
            TierConfig(name="auth", max_requests=10, message="Too many requests on auth endpoints. Try again later."),
            TierConfig(name="api", max_requests=100, message="Too many requests. Please try later."),
        ],
        description="global, auth and api tiers"
    )


def get_rate_limit_config(settings: Optional[Settings] = None) -> RateLimitConfig:
    """Get rate limiting configuration from settings."""
    settings = settings or get_settings()
    style = settings.RATE_LIMIT_HEADER_STYLE

    return RateLimitConfig(
        enabled=settings.ENABLE_RATE_LIMITING,
        algorithm=settings.RATE_LIMIT_ALGORITHM,
        sweep_interval=settings.RATE_LIMIT_SWEEP_INTERVAL,
        trust_forwarded_for=settings.RATE_LIMIT_TRUST_FORWARDED_FOR,
        exempt_paths=settings.RATE_LIMIT_EXEMPT_PATHS,
        tiers=[
            TierConfig(
                name="global",
                max_requests=settings.RATE_LIMIT_GLOBAL_LIMIT,
                window_seconds=settings.RATE_LIMIT_GLOBAL_WINDOW,
                message=settings.RATE_LIMIT_GLOBAL_MESSAGE,
                header_style=style
            ),
            TierConfig(
                name="auth",
                max_requests=settings.RATE_LIMIT_AUTH_LIMIT,
                window_seconds=settings.RATE_LIMIT_AUTH_WINDOW,
                message=settings.RATE_LIMIT_AUTH_MESSAGE,
                header_style=style
            ),
            TierConfig(
                name="api",
                max_requests=settings.RATE_LIMIT_API_LIMIT,
                window_seconds=settings.RATE_LIMIT_API_WINDOW,
                message=settings.RATE_LIMIT_API_MESSAGE,
                header_style=style
            ),
        ]
    )


def create_rate_limiter(
    config: Optional[RateLimitConfig] = None,
    clock: Optional[Clock] = None
) -> Optional[RateLimiter]:
    """
    Create rate limiter instance based on configuration.

    Args:
        config: Rate limiting configuration (defaults to settings)
        clock: Time source (defaults to the monotonic clock)

    Returns:
        RateLimiter instance or None if disabled
    """
    if config is None:
        config = get_rate_limit_config()

    if not config.enabled:
        return None

    if config.backend == "memory":
        store = MemoryCounterStore(sweep_interval=config.sweep_interval)
    else:
        raise RateLimitConfigurationError(
            f"Unknown rate limiting backend: {config.backend}",
            config_error="backend"
        )

    registry = make_default_registry([tier.to_policy() for tier in config.tiers])

    return RateLimiter(store, registry, get_algorithm(config.algorithm), clock)
