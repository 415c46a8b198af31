"""
Window algorithms for the rate limiter.

Each algorithm is a pure decision function: given the stored window state
for one (tier, client) pair, the tier configuration and the current time,
it returns the admission decision and the state to store back. Algorithms
never touch the counter store themselves; the store serializes calls per key.

Two strategies are available:
- FixedWindow: O(1) state per key. A window opens on the first request and
  lasts `window_seconds`. Up to 2x the limit can pass across a boundary.
- SlidingWindowLog: keeps up to `max_requests` admission timestamps per key
  and enforces a strictly rolling limit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Tuple, Type, Union

from .exceptions import RateLimitConfigurationError

if TYPE_CHECKING:
    from .policy import RatePolicy


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one request against one tier."""
    admitted: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None
    limit: int = 0
    policy: str = ""


@dataclass(frozen=True)
class FixedWindowState:
    """Counter for the window that opened at `window_start`."""
    window_start: float
    count: int = 0

    def expires_at(self, window_seconds: float) -> float:
        return self.window_start + window_seconds


@dataclass(frozen=True)
class SlidingLogState:
    """Admission timestamps inside the current window, oldest first."""
    timestamps: Tuple[float, ...] = ()

    def expires_at(self, window_seconds: float) -> float:
        if not self.timestamps:
            return float("-inf")
        return self.timestamps[-1] + window_seconds


WindowState = Union[FixedWindowState, SlidingLogState]


class WindowAlgorithm(ABC):
    """Abstract base class for window algorithms."""

    name: str = ""

    @abstractmethod
    def initial_state(self, now: float) -> WindowState:
        """Return the zero state for a key seen for the first time at `now`."""

    @abstractmethod
    def evaluate(
        self, state: WindowState, policy: "RatePolicy", now: float
    ) -> Tuple[Decision, WindowState]:
        """Decide whether a request at `now` is admitted and compute the new state."""


class FixedWindow(WindowAlgorithm):
    """Fixed window counter."""

    name = "fixed_window"

    def initial_state(self, now: float) -> FixedWindowState:
        return FixedWindowState(window_start=now, count=0)

    def evaluate(
        self, state: FixedWindowState, policy: "RatePolicy", now: float
    ) -> Tuple[Decision, FixedWindowState]:
        if now - state.window_start >= policy.window_seconds:
            state = FixedWindowState(window_start=now, count=0)

        reset_at = state.window_start + policy.window_seconds

        if state.count < policy.max_requests:
            count = state.count + 1
            decision = Decision(
                admitted=True,
                remaining=policy.max_requests - count,
                reset_at=reset_at,
                limit=policy.max_requests,
                policy=policy.name
            )
            return decision, FixedWindowState(window_start=state.window_start, count=count)

        decision = Decision(
            admitted=False,
            remaining=0,
            reset_at=reset_at,
            retry_after=reset_at - now,
            limit=policy.max_requests,
            policy=policy.name
        )
        return decision, state


class SlidingWindowLog(WindowAlgorithm):
    """Sliding window log."""

    name = "sliding_log"

    def initial_state(self, now: float) -> SlidingLogState:
        return SlidingLogState()

    def evaluate(
        self, state: SlidingLogState, policy: "RatePolicy", now: float
    ) -> Tuple[Decision, SlidingLogState]:
        # Lazy purge: anything that has aged a full window out is dropped here
        cutoff = now - policy.window_seconds
        timestamps = tuple(ts for ts in state.timestamps if ts > cutoff)

        if len(timestamps) < policy.max_requests:
            timestamps = timestamps + (now,)
            decision = Decision(
                admitted=True,
                remaining=policy.max_requests - len(timestamps),
                reset_at=timestamps[0] + policy.window_seconds,
                limit=policy.max_requests,
                policy=policy.name
            )
            return decision, SlidingLogState(timestamps=timestamps)

        oldest = timestamps[0]
        decision = Decision(
            admitted=False,
            remaining=0,
            reset_at=oldest + policy.window_seconds,
            retry_after=oldest + policy.window_seconds - now,
            limit=policy.max_requests,
            policy=policy.name
        )
        return decision, SlidingLogState(timestamps=timestamps)


ALGORITHMS: Dict[str, Type[WindowAlgorithm]] = {
    FixedWindow.name: FixedWindow,
    SlidingWindowLog.name: SlidingWindowLog,
}


def get_algorithm(name: str) -> WindowAlgorithm:
    """Instantiate a window algorithm by its configuration name."""
    try:
        return ALGORITHMS[name]()
    except KeyError:
        raise RateLimitConfigurationError(
            f"Unknown rate limiting algorithm: {name}",
            config_error=f"expected one of {sorted(ALGORITHMS)}"
        ) from None
