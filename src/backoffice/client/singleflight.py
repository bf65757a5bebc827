"""Coalesce concurrent calls into one in-flight execution.

Learn: The first caller starts the work; everyone who arrives while it is
running awaits the same future and gets the same result (or exception).
The slot is emptied once the work settles, so the next call after that
starts fresh. Callers await through asyncio.shield so one caller being
cancelled does not cancel the shared work for the rest.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    def __init__(self):
        self._inflight: Optional[asyncio.Future] = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def do(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run(fn))
        return await asyncio.shield(self._inflight)

    async def _run(self, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        finally:
            self._inflight = None
