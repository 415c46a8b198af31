"""Rate limiter implementation."""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .algorithms import Decision, FixedWindow, WindowAlgorithm
from .clock import Clock, MonotonicClock
from .exceptions import RateLimitExceededError
from .keys import RequestDescriptor, build_rl_key, extract_client_key
from .policy import PolicyRegistry, RatePolicy, make_default_registry
from .store import CounterStore, MemoryCounterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of running a request through every applicable tier."""
    decision: Decision
    policy: RatePolicy
    evaluated: Tuple[Tuple[RatePolicy, Decision], ...]
    now: float
    client_key: str = ""

    @property
    def admitted(self) -> bool:
        return self.decision.admitted


class RateLimiter:
    """
    Admission engine: evaluates a request against every tier that applies
    to its route class, updating one counter per evaluated tier.

    Tiers are evaluated in registry order and the first rejection
    short-circuits. Counters of tiers evaluated before the rejecting one
    keep their increment.
    """

    def __init__(
        self,
        store: CounterStore,
        registry: PolicyRegistry,
        algorithm: Optional[WindowAlgorithm] = None,
        clock: Optional[Clock] = None
    ):
        """Initialize rate limiter with store, tiers, algorithm and clock."""
        self._store = store
        self._registry = registry
        self._algorithm = algorithm or FixedWindow()
        self._clock = clock or MonotonicClock()

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def store(self) -> CounterStore:
        return self._store

    @property
    def algorithm(self) -> WindowAlgorithm:
        return self._algorithm

    def check(self, descriptor: RequestDescriptor, route_class: Optional[str] = None) -> AdmissionResult:
        """Evaluate and count a request. Never raises for an over-limit request."""
        route_class = route_class or descriptor.route_class
        now = self._clock.now()
        evaluated = []
        client_keys = {}

        for policy in self._registry.policies_for(route_class):
            client_key = extract_client_key(policy.key_extractor, descriptor)
            decision = self._evaluate(policy, client_key, now)
            evaluated.append((policy, decision))
            client_keys[policy.name] = client_key

            if not decision.admitted:
                logger.warning(
                    "Rate limit exceeded",
                    extra={
                        "policy": policy.name,
                        "route_class": route_class,
                        "path": descriptor.path,
                        "retry_after": decision.retry_after,
                        "rate_limit_key": build_rl_key(policy=policy.name, client_key=client_key)
                    }
                )
                return AdmissionResult(decision, policy, tuple(evaluated), now, client_key)

        # Most restrictive tier describes the request; later tiers win ties
        policy, decision = min(reversed(evaluated), key=lambda item: item[1].remaining)
        return AdmissionResult(decision, policy, tuple(evaluated), now, client_keys[policy.name])

    def enforce(self, descriptor: RequestDescriptor, route_class: Optional[str] = None) -> AdmissionResult:
        """
        Same as check(), for callers outside the HTTP middleware.

        Raises:
            RateLimitExceededError: if any tier rejects the request
        """
        result = self.check(descriptor, route_class)
        if not result.admitted:
            raise RateLimitExceededError(
                result.policy.message,
                retry_after=result.decision.retry_after,
                policy=result.policy.name,
                key=build_rl_key(policy=result.policy.name, client_key=result.client_key)
            )
        return result

    def _evaluate(self, policy: RatePolicy, client_key: str, now: float) -> Decision:
        return self._store.update(
            policy,
            client_key,
            now,
            lambda state: self._algorithm.evaluate(state, policy, now),
            lambda: self._algorithm.initial_state(now)
        )


def make_default_limiter(clock: Optional[Clock] = None) -> RateLimiter:
    """Factory function to create a RateLimiter with the FlexFlow tiers and an in-memory store."""
    return RateLimiter(MemoryCounterStore(), make_default_registry(), FixedWindow(), clock)
