"""Counter store implementations."""

import threading
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, Tuple, TypeVar

from .algorithms import WindowState
from .exceptions import CounterStoreError

if TYPE_CHECKING:
    from .policy import RatePolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateFactory = Callable[[], WindowState]
StateUpdate = Callable[[WindowState], Tuple[T, WindowState]]


class CounterEntry:
    """Window state for one (tier, client key) pair plus its lock."""

    __slots__ = ("state", "window_seconds", "lock", "evicted")

    def __init__(self, state: WindowState, window_seconds: float):
        self.state = state
        self.window_seconds = window_seconds
        self.lock = threading.Lock()
        self.evicted = False

    def expires_at(self) -> float:
        return self.state.expires_at(self.window_seconds)


class CounterStore(ABC):
    """Abstract base class for counter stores."""

    @abstractmethod
    def get_or_create(self, policy: "RatePolicy", key: str, factory: StateFactory) -> CounterEntry:
        """Return the entry for (policy, key), inserting `factory()` if absent."""

    @abstractmethod
    def update(
        self,
        policy: "RatePolicy",
        key: str,
        now: float,
        fn: StateUpdate,
        factory: StateFactory
    ) -> T:
        """
        Atomically apply `fn` to the state stored for (policy, key).
        `fn` receives the current state and returns (result, new_state);
        new_state is stored and result is returned.
        """

    @abstractmethod
    def evict_stale(self, now: float) -> int:
        """Drop entries whose window has fully elapsed. Return how many were dropped."""

    @abstractmethod
    def __len__(self) -> int:
        pass


class MemoryCounterStore(CounterStore):
    """
    Thread-safe in-memory counter store.

    The store lock only guards the key table. Each entry has its own lock,
    held for the whole read-modify-write, so requests for different keys
    never wait on each other.
    """

    def __init__(self, sweep_interval: int = 1000):
        """
        Args:
            sweep_interval: run evict_stale() every this many updates (0 disables)
        """
        self._entries: Dict[Tuple[str, str], CounterEntry] = {}
        self._lock = threading.Lock()
        self._sweep_interval = sweep_interval
        self._updates = 0

    def get_or_create(self, policy: "RatePolicy", key: str, factory: StateFactory) -> CounterEntry:
        store_key = (policy.name, key)
        with self._lock:
            entry = self._entries.get(store_key)
            if entry is None:
                entry = CounterEntry(factory(), policy.window_seconds)
                self._entries[store_key] = entry
            return entry

    def update(
        self,
        policy: "RatePolicy",
        key: str,
        now: float,
        fn: StateUpdate,
        factory: StateFactory
    ) -> T:
        try:
            self._maybe_sweep(now)
            while True:
                entry = self.get_or_create(policy, key, factory)
                with entry.lock:
                    # Swept between lookup and lock; look it up again
                    if entry.evicted:
                        continue
                    result, entry.state = fn(entry.state)
                    return result
        except CounterStoreError:
            raise
        except Exception as e:
            logger.error(
                "Counter store error during update",
                extra={"policy": policy.name, "key": key, "error": str(e)},
                exc_info=True
            )
            raise CounterStoreError(f"Counter store failed: {str(e)}", str(e)) from e

    def evict_stale(self, now: float) -> int:
        evicted = 0
        with self._lock:
            for store_key, entry in list(self._entries.items()):
                if entry.expires_at() > now:
                    continue
                # An entry someone is updating right now is not stale
                if not entry.lock.acquire(blocking=False):
                    continue
                try:
                    entry.evicted = True
                    del self._entries[store_key]
                    evicted += 1
                finally:
                    entry.lock.release()

        if evicted:
            logger.debug(
                "Evicted stale rate limit counters",
                extra={"evicted": evicted, "remaining_entries": len(self._entries)}
            )
        return evicted

    def _maybe_sweep(self, now: float) -> None:
        if self._sweep_interval <= 0:
            return
        with self._lock:
            self._updates += 1
            due = self._updates % self._sweep_interval == 0
        if due:
            self.evict_stale(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
