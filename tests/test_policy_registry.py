"""Tests for rate limit tiers and the policy registry."""

import pytest

from flexflow_gateway.rl import (
    HeaderStyle,
    PolicyRegistry,
    RatePolicy,
    RouteClass,
    make_default_registry
)
from flexflow_gateway.rl.exceptions import RateLimitConfigurationError


class TestRatePolicy:
    """Test tier validation."""

    def test_defaults(self):
        policy = RatePolicy(name="global", max_requests=300, window_seconds=60)

        assert policy.header_style is HeaderStyle.DRAFT_8
        assert policy.message == "Too many requests, please try again later."

    def test_header_style_from_string(self):
        policy = RatePolicy(name="api", max_requests=1, window_seconds=1, header_style="draft-6")
        assert policy.header_style is HeaderStyle.DRAFT_6

    @pytest.mark.parametrize("kwargs", [
        {"name": "", "max_requests": 1, "window_seconds": 60},
        {"name": "x", "max_requests": 0, "window_seconds": 60},
        {"name": "x", "max_requests": 2.5, "window_seconds": 60},
        {"name": "x", "max_requests": True, "window_seconds": 60},
        {"name": "x", "max_requests": 1, "window_seconds": 0},
    ])
    def test_invalid_policy(self, kwargs):
        with pytest.raises(RateLimitConfigurationError):
            RatePolicy(**kwargs)

    def test_invalid_header_style(self):
        with pytest.raises(ValueError):
            RatePolicy(name="x", max_requests=1, window_seconds=1, header_style="legacy")

    def test_policy_is_immutable(self):
        policy = RatePolicy(name="x", max_requests=1, window_seconds=1)
        with pytest.raises(AttributeError):
            policy.max_requests = 5


class TestPolicyRegistry:
    """Test route class lookup."""

    @pytest.fixture
    def registry(self):
        return make_default_registry()

    def test_default_tiers(self, registry):
        assert [p.name for p in registry] == ["global", "auth", "api"]
        assert registry.get("global").max_requests == 300
        assert registry.get("auth").max_requests == 10
        assert registry.get("api").max_requests == 100
        assert all(p.window_seconds == 60 for p in registry)

    def test_policies_for_broadest_first(self, registry):
        assert [p.name for p in registry.policies_for("global")] == ["global"]
        assert [p.name for p in registry.policies_for("auth")] == ["global", "auth"]
        assert [p.name for p in registry.policies_for(RouteClass.API)] == ["global", "api"]

    def test_unknown_route_class_uses_default(self, registry):
        assert [p.name for p in registry.policies_for("reports")] == ["global"]
        assert [p.name for p in registry.policies_for(None)] == ["global"]

    @pytest.mark.parametrize("path,expected", [
        ("/", "global"),
        ("/api", "api"),
        ("/api/project/12", "api"),
        ("/api/auth", "auth"),
        ("/api/auth/login", "auth"),
        ("/api/authors", "api"),
        ("/apiary", "global"),
    ])
    def test_classify(self, registry, path, expected):
        assert registry.classify(path) == expected

    def test_routes_view(self, registry):
        assert registry.routes == {
            "global": ("global",),
            "auth": ("global", "auth"),
            "api": ("global", "api"),
        }

    def test_unknown_policy_in_routes(self):
        with pytest.raises(RateLimitConfigurationError):
            PolicyRegistry(
                policies=[RatePolicy(name="global", max_requests=1, window_seconds=1)],
                routes={"global": ["global", "missing"]}
            )

    def test_empty_route(self):
        with pytest.raises(RateLimitConfigurationError):
            PolicyRegistry(
                policies=[RatePolicy(name="global", max_requests=1, window_seconds=1)],
                routes={"global": ["global"], "auth": []}
            )

    def test_duplicate_policy_names(self):
        with pytest.raises(RateLimitConfigurationError):
            PolicyRegistry(
                policies=[
                    RatePolicy(name="global", max_requests=1, window_seconds=1),
                    RatePolicy(name="global", max_requests=2, window_seconds=1),
                ],
                routes={"global": ["global"]}
            )

    def test_missing_default_route(self):
        with pytest.raises(RateLimitConfigurationError):
            PolicyRegistry(
                policies=[RatePolicy(name="api", max_requests=1, window_seconds=1)],
                routes={"api": ["api"]},
                default_route="global"
            )

    def test_prefix_to_unknown_route_class(self):
        with pytest.raises(RateLimitConfigurationError):
            PolicyRegistry(
                policies=[RatePolicy(name="global", max_requests=1, window_seconds=1)],
                routes={"global": ["global"]},
                route_prefixes={"/api": "api"}
            )

    def test_default_registry_requires_named_tiers(self):
        with pytest.raises(RateLimitConfigurationError):
            make_default_registry([RatePolicy(name="global", max_requests=1, window_seconds=1)])
