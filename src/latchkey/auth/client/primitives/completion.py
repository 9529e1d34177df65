"""One-shot completion slot shared between the callback listener and the flow.

Accepts exactly one value from a producer and hands it to the waiting
consumer. Later deliveries are refused so that at most one authorization
code is ever acted upon.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class OneShotCompletion(Generic[T]):
    """Lock-guarded single-value handoff between two asyncio tasks."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._event = asyncio.Event()
        self._value: T | None = None
        self._consumed = False

    @property
    def consumed(self) -> bool:
        """Whether a value has already been delivered."""
        return self._consumed

    async def deliver(self, value: T) -> bool:
        """Deliver ``value`` to the waiter.

        Returns:
            True if this call filled the slot, False if it was already taken
        """
        async with self._lock:
            if self._consumed:
                return False
            self._consumed = True
            self._value = value
            self._event.set()
            return True

    async def wait(self, timeout: float | None = None) -> T:
        """Wait for the delivered value.

        Raises:
            asyncio.TimeoutError: If nothing is delivered within ``timeout`` seconds
        """
        await asyncio.wait_for(self._event.wait(), timeout)
        return self._value  # type: ignore[return-value]
