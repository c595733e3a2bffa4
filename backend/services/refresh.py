"""
Single-flight and stale-response guards for screen refreshes.

A collection (the destination list, the ping history) has at most one load or
save outstanding per key at a time. Each change of selection bumps a
generation number so that a response fetched for an older selection is
dropped instead of overwriting the newer one.
"""

from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, TypeVar
import asyncio

from core.exceptions import OperationInProgressError

T = TypeVar("T")

Runner = Callable[..., Awaitable[Any]]


async def run_in_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Default runner: blocking collaborator calls are awaited off the event loop."""
    return await asyncio.to_thread(func, *args, **kwargs)


class SingleFlight:
    """Rejects a second trigger for a key while the first one is still running."""

    def __init__(self, name: str):
        self.name = name
        self._running: Dict[Hashable, str] = {}

    def busy(self, key: Optional[Hashable] = None) -> bool:
        if key is None:
            return bool(self._running)
        return key in self._running

    def ensure_idle(self, key: Optional[Hashable] = None):
        if self.busy(key):
            operation = self._running.get(key) if key is not None else next(iter(self._running.values()))
            raise OperationInProgressError(f"{self.name} {operation}")

    async def run(self, operation: str, factory: Callable[[], Awaitable[T]], key: Hashable = "default") -> T:
        self.ensure_idle(key)
        self._running[key] = operation
        try:
            return await factory()
        finally:
            self._running.pop(key, None)


class SelectionGuard:
    """Generation counter; a token is current until the selection changes again."""

    def __init__(self):
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def advance(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation
