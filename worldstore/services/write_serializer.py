"""Per-resource serialization of read-modify-write operations."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TypeVar

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

AREA_LIST_KEY = "area-list"


def account_key(profile: str) -> str:
    return f"account:{profile}"


def area_key(area_id: str) -> str:
    return f"area:{area_id}"


@dataclass
class _KeyState:
    """Lock for one resource key plus the number of holders and waiters."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class WriteSerializer:
    """
    Run operations exclusively per resource key.

    Operations on the same key execute one at a time in arrival (FIFO)
    order; operations on distinct keys run concurrently. There is no
    acquisition timeout: a caller queues until every earlier caller on
    the same key has finished.

    Usage:
        result = await serializer.run_exclusive(profile, lambda: mutate(profile))

        async with serializer.acquire(profile):
            ...
    """

    def __init__(self) -> None:
        self._table_lock = threading.Lock()
        self._states: dict[str, _KeyState] = {}

    def _checkout(self, resource_key: str) -> _KeyState:
        with self._table_lock:
            state = self._states.get(resource_key)
            if state is None:
                state = _KeyState()
                self._states[resource_key] = state
            state.users += 1
            return state

    def _checkin(self, resource_key: str, state: _KeyState) -> None:
        with self._table_lock:
            state.users -= 1
            if state.users == 0 and self._states.get(resource_key) is state:
                del self._states[resource_key]

    @asynccontextmanager
    async def acquire(self, resource_key: str) -> AsyncIterator[None]:
        """
        Hold the lock for ``resource_key`` for the duration of the block.

        The lock is released on every exit path, including cancellation
        while waiting.
        """
        state = self._checkout(resource_key)
        try:
            async with state.lock:
                yield
        finally:
            self._checkin(resource_key, state)

    async def run_exclusive(self, resource_key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Await ``operation()`` while holding the lock for ``resource_key``.

        Exceptions raised by the operation propagate unchanged after the
        lock is released.
        """
        async with self.acquire(resource_key):
            return await operation()

    def pending(self, resource_key: str) -> int:
        """Number of holders plus waiters currently registered for ``resource_key``."""
        with self._table_lock:
            state = self._states.get(resource_key)
            return state.users if state else 0

    def active_keys(self) -> int:
        """Number of resource keys with at least one holder or waiter."""
        with self._table_lock:
            return len(self._states)
