"""
Rate limit tiers and the registry mapping route classes to them.

A request may be subject to several tiers at once, for example the global
tier plus a stricter tier for authentication routes. The registry returns
them broadest first; the limiter evaluates all of them and the first
rejection wins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from .exceptions import RateLimitConfigurationError
from .keys import KeyExtractor, client_address_key


class HeaderStyle(str, Enum):
    """Which quota headers a tier emits."""
    DRAFT_8 = "draft-8"
    DRAFT_6 = "draft-6"
    OFF = "off"


class RouteClass(str, Enum):
    """Route classes of the FlexFlow API."""
    GLOBAL = "global"
    AUTH = "auth"
    API = "api"


@dataclass(frozen=True)
class RatePolicy:
    """Rate limiting policy for one tier."""
    name: str
    max_requests: int
    window_seconds: float
    message: str = "Too many requests, please try again later."
    header_style: HeaderStyle = HeaderStyle.DRAFT_8
    key_extractor: KeyExtractor = field(default=client_address_key, compare=False)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise RateLimitConfigurationError("policy name must not be empty", config_error="name")
        if isinstance(self.max_requests, bool) or not isinstance(self.max_requests, int) or self.max_requests < 1:
            raise RateLimitConfigurationError(
                f"max_requests must be a positive integer for policy '{self.name}'",
                config_error="max_requests"
            )
        if self.window_seconds <= 0:
            raise RateLimitConfigurationError(
                f"window_seconds must be > 0 for policy '{self.name}'",
                config_error="window_seconds"
            )
        # Accept plain strings from configuration
        object.__setattr__(self, "header_style", HeaderStyle(self.header_style))


class PolicyRegistry:
    """Static lookup from route class to the ordered tiers that apply to it."""

    def __init__(
        self,
        policies: Sequence[RatePolicy],
        routes: Mapping[str, Sequence[str]],
        default_route: str = RouteClass.GLOBAL.value,
        route_prefixes: Optional[Mapping[str, str]] = None
    ):
        """
        Args:
            policies: all tiers
            routes: route class -> tier names, broadest first
            default_route: route class used for unknown classes and unmatched paths
            route_prefixes: path prefix -> route class
        """
        self._policies: Dict[str, RatePolicy] = {}
        for policy in policies:
            if policy.name in self._policies:
                raise RateLimitConfigurationError(
                    f"Duplicate policy name: {policy.name}", config_error="policies"
                )
            self._policies[policy.name] = policy

        self._routes: Dict[str, Tuple[RatePolicy, ...]] = {}
        for route_class, names in routes.items():
            if not names:
                raise RateLimitConfigurationError(
                    f"Route class '{route_class}' has no policies", config_error="routes"
                )
            unknown = [name for name in names if name not in self._policies]
            if unknown:
                raise RateLimitConfigurationError(
                    f"Route class '{route_class}' references unknown policies: {unknown}",
                    config_error="routes"
                )
            self._routes[route_class] = tuple(self._policies[name] for name in names)

        if default_route not in self._routes:
            raise RateLimitConfigurationError(
                f"Default route class '{default_route}' is not defined",
                config_error="default_route"
            )
        self._default_route = default_route

        prefixes = dict(route_prefixes or {})
        for prefix, route_class in prefixes.items():
            if route_class not in self._routes:
                raise RateLimitConfigurationError(
                    f"Path prefix '{prefix}' maps to unknown route class '{route_class}'",
                    config_error="route_prefixes"
                )
        # Longest prefix wins
        self._prefixes = sorted(prefixes.items(), key=lambda item: len(item[0]), reverse=True)

    @property
    def default_route(self) -> str:
        return self._default_route

    @property
    def routes(self) -> Dict[str, Tuple[str, ...]]:
        return {
            route_class: tuple(policy.name for policy in policies)
            for route_class, policies in self._routes.items()
        }

    def get(self, name: str) -> RatePolicy:
        return self._policies[name]

    def policies_for(self, route_class: Optional[str]) -> Tuple[RatePolicy, ...]:
        """Return the tiers for `route_class`, or the default route's tiers if unknown."""
        if isinstance(route_class, Enum):
            route_class = route_class.value
        if route_class is not None and route_class in self._routes:
            return self._routes[route_class]
        return self._routes[self._default_route]

    def classify(self, path: str) -> str:
        """Map a request path to its route class."""
        for prefix, route_class in self._prefixes:
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return route_class
        return self._default_route

    def __iter__(self) -> Iterator[RatePolicy]:
        return iter(self._policies.values())

    def __len__(self) -> int:
        return len(self._policies)


GLOBAL_POLICY = RatePolicy(
    name="global",
    max_requests=300,
    window_seconds=60,
    message="Too many requests, please try again later."
)

AUTH_POLICY = RatePolicy(
    name="auth",
    max_requests=10,
    window_seconds=60,
    message="Too many requests on auth endpoints. Try again later."
)

API_POLICY = RatePolicy(
    name="api",
    max_requests=100,
    window_seconds=60,
    message="Too many requests. Please try later."
)

DEFAULT_ROUTES: Dict[str, Tuple[str, ...]] = {
    RouteClass.GLOBAL.value: ("global",),
    RouteClass.AUTH.value: ("global", "auth"),
    RouteClass.API.value: ("global", "api"),
}

DEFAULT_ROUTE_PREFIXES: Dict[str, str] = {
    "/api/auth": RouteClass.AUTH.value,
    "/api": RouteClass.API.value,
}


def make_default_registry(policies: Optional[Sequence[RatePolicy]] = None) -> PolicyRegistry:
    """Registry with the FlexFlow tiers (or replacements with the same names)."""
    return PolicyRegistry(
        policies=policies or (GLOBAL_POLICY, AUTH_POLICY, API_POLICY),
        routes=DEFAULT_ROUTES,
        default_route=RouteClass.GLOBAL.value,
        route_prefixes=DEFAULT_ROUTE_PREFIXES
    )
