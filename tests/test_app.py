"""End-to-end tests of the rate limiting middleware inside the FastAPI app."""

import logging

import pytest
from fastapi.testclient import TestClient

from flexflow_gateway.core.config import Settings
from flexflow_gateway.main import create_app
from flexflow_gateway.rl import (
    FixedWindow,
    ManualClock,
    MemoryCounterStore,
    RateLimiter,
    RatePolicy,
    make_default_registry
)
from flexflow_gateway.rl.exceptions import CounterStoreError
from flexflow_gateway.rl.store import CounterStore


AUTH_MESSAGE = "Too many requests on auth endpoints. Try again later."


def small_limiter(clock, store=None):
    registry = make_default_registry([
        RatePolicy(name="global", max_requests=5, window_seconds=60),
        RatePolicy(name="auth", max_requests=3, window_seconds=60, message=AUTH_MESSAGE),
        RatePolicy(name="api", max_requests=4, window_seconds=60, message="Too many requests. Please try later."),
    ])
    store = store if store is not None else MemoryCounterStore()
    return RateLimiter(store, registry, FixedWindow(), clock)


class FailingStore(CounterStore):
    """Store whose every update fails."""

    def get_or_create(self, policy, key, factory):
        raise CounterStoreError("Counter store failed: exhausted", "exhausted")

    def update(self, policy, key, now, fn, factory):
        raise CounterStoreError("Counter store failed: exhausted", "exhausted")

    def evict_stale(self, now):
        return 0

    def __len__(self):
        return 0


@pytest.fixture
def clock():
    return ManualClock(1000.0)


@pytest.fixture
def client(clock):
    settings = Settings(RATE_LIMIT_TRUST_FORWARDED_FOR=True)
    app = create_app(settings, limiter=small_limiter(clock))
    with TestClient(app) as test_client:
        yield test_client


def from_client(address):
    return {"X-Forwarded-For": address}


class TestAdmission:
    """Admitted requests carry quota headers."""

    def test_root_admitted_with_headers(self, client):
        response = client.get("/", headers=from_client("203.0.113.1"))

        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to the FlexFlow API"}
        assert response.headers["RateLimit-Policy"] == '"global";q=5;w=60'
        assert response.headers["RateLimit"] == '"global";r=4;t=60'

    def test_auth_route_reports_both_tiers(self, client):
        response = client.post("/api/auth/login", headers=from_client("203.0.113.2"))

        # Domain routes live elsewhere; the limiter still counted the call
        assert response.status_code == 404
        assert response.headers["RateLimit"] == '"global";r=4;t=60, "auth";r=2;t=60'

    def test_health_is_exempt(self, client):
        for _ in range(10):
            response = client.get("/health", headers=from_client("203.0.113.3"))
            assert response.status_code == 200
            assert "RateLimit" not in response.headers

        assert response.json()["rate_limiting"] is True


class TestRejection:
    """Rejected requests get a 429 with the tier's message."""

    def test_fourth_auth_call_rejected(self, client):
        for _ in range(3):
            assert client.post("/api/auth/login", headers=from_client("203.0.113.4")).status_code == 404

        response = client.post("/api/auth/login", headers=from_client("203.0.113.4"))

        assert response.status_code == 429
        assert response.json() == {"error": AUTH_MESSAGE}
        assert response.headers["Retry-After"] == "60"
        assert response.headers["RateLimit"] == '"global";r=1;t=60, "auth";r=0;t=60'

    def test_other_clients_unaffected(self, client):
        for _ in range(4):
            client.post("/api/auth/login", headers=from_client("203.0.113.5"))

        assert client.post("/api/auth/login", headers=from_client("203.0.113.6")).status_code == 404

    def test_global_limit_applies_across_route_classes(self, client):
        address = from_client("203.0.113.7")
        for _ in range(5):
            assert client.get("/", headers=address).status_code == 200

        response = client.get("/api/ratelimit/policies", headers=address)

        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests, please try again later."}

    def test_window_elapses(self, client, clock):
        address = from_client("203.0.113.8")
        for _ in range(5):
            client.get("/", headers=address)
        assert client.get("/", headers=address).status_code == 429

        clock.advance(60)

        response = client.get("/", headers=address)
        assert response.status_code == 200
        assert response.headers["RateLimit"] == '"global";r=4;t=60'

    def test_unidentified_clients_share_anonymous_bucket(self, client):
        # TestClient's peer is "testclient", which is not an IP address
        for _ in range(5):
            assert client.get("/").status_code == 200

        assert client.get("/").status_code == 429
        assert client.get("/", headers=from_client("203.0.113.9")).status_code == 200


class TestPolicyListing:

    def test_lists_tiers(self, client):
        response = client.get("/api/ratelimit/policies", headers=from_client("203.0.113.10"))

        assert response.status_code == 200
        body = response.json()
        assert body["enabled"] is True
        assert body["algorithm"] == "fixed_window"
        assert [p["name"] for p in body["policies"]] == ["global", "auth", "api"]
        assert body["routes"]["auth"] == ["global", "auth"]

    def test_disabled_rate_limiting(self):
        app = create_app(Settings(ENABLE_RATE_LIMITING=False))
        with TestClient(app) as client:
            response = client.get("/api/ratelimit/policies")

        assert response.status_code == 200
        assert response.json()["enabled"] is False
        assert "RateLimit" not in response.headers


def test_store_failure_is_server_error_not_429(clock):
    app = create_app(Settings(), limiter=small_limiter(clock, store=FailingStore()))
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error occurred"}


def test_default_app_uses_settings_tiers():
    app = create_app(Settings(RATE_LIMIT_AUTH_LIMIT=2, RATE_LIMIT_ALGORITHM="sliding_log"))
    limiter = app.state.rate_limiter

    assert limiter.registry.get("auth").max_requests == 2
    assert limiter.algorithm.name == "sliding_log"


def test_error_responses_documented(client):
    schema = client.get("/openapi.json", headers=from_client("203.0.113.11")).json()

    responses = schema["paths"]["/api/ratelimit/policies"]["get"]["responses"]
    for status_code in ("429", "500"):
        ref = responses[status_code]["content"]["application/json"]["schema"]["$ref"]
        assert ref == "#/components/schemas/ErrorResponse"


def test_create_app_configures_logging():
    create_app(Settings(LOG_FORMAT="json"))

    names = [h.get_name() for h in logging.getLogger().handlers]
    assert names.count("flexflow_gateway") == 1
