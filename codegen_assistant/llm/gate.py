"""Admission gate bounding concurrent completion requests."""

import asyncio
from collections import deque
from types import TracebackType


class AdmissionGate:
    """Counting gate that admits waiters in strict FIFO order.

    Each ``release`` either hands its slot directly to the longest-waiting
    caller or returns it to the pool, so a later caller can never overtake
    an earlier waiter.
    """

    def __init__(self, capacity: int) -> None:
        self._available = max(1, capacity)
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def available(self) -> int:
        """Number of free slots."""
        return self._available

    @property
    def waiting(self) -> int:
        """Number of callers suspended in the queue."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        """Wait until a slot is available and take it."""
        if self._available > 0 and not self._waiters:
            self._available -= 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was already handed over; pass it on.
                self.release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def release(self) -> None:
        """Return a slot, waking the longest-waiting caller if any."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._available += 1

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
