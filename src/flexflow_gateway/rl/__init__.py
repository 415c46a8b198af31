"""Rate limiting module."""

from .clock import Clock, MonotonicClock, ManualClock
from .keys import (
    ANONYMOUS_KEY,
    RequestDescriptor,
    build_rl_key,
    client_address_key,
    client_address_and_route_key,
    extract_client_key,
    normalize_address
)
from .algorithms import (
    Decision,
    FixedWindow,
    FixedWindowState,
    SlidingLogState,
    SlidingWindowLog,
    WindowAlgorithm,
    get_algorithm
)
from .store import CounterStore, MemoryCounterStore
from .policy import HeaderStyle, PolicyRegistry, RatePolicy, RouteClass, make_default_registry
from .limiter import AdmissionResult, RateLimiter, make_default_limiter
from .headers import build_quota_headers, build_rejection_headers
from .middleware import RateLimitMiddleware
from .config import RateLimitConfig, TierConfig, get_rate_limit_config, create_rate_limiter
from .exceptions import (
    RateLimitError,
    RateLimitExceededError,
    RateLimitConfigurationError,
    KeyExtractionError,
    CounterStoreError
)

__all__ = [
    "Clock",
    "MonotonicClock",
    "ManualClock",
    "ANONYMOUS_KEY",
    "RequestDescriptor",
    "build_rl_key",
    "client_address_key",
    "client_address_and_route_key",
    "extract_client_key",
    "normalize_address",
    "Decision",
    "FixedWindow",
    "FixedWindowState",
    "SlidingLogState",
    "SlidingWindowLog",
    "WindowAlgorithm",
    "get_algorithm",
    "CounterStore",
    "MemoryCounterStore",
    "HeaderStyle",
    "PolicyRegistry",
    "RatePolicy",
    "RouteClass",
    "make_default_registry",
    "AdmissionResult",
    "RateLimiter",
    "make_default_limiter",
    "build_quota_headers",
    "build_rejection_headers",
    "RateLimitMiddleware",
    "RateLimitConfig",
    "TierConfig",
    "get_rate_limit_config",
    "create_rate_limiter",
    "RateLimitError",
    "RateLimitExceededError",
    "RateLimitConfigurationError",
    "KeyExtractionError",
    "CounterStoreError"
]
