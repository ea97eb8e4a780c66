"""TTL cache of rendered page data, keyed by path.

Entries are evicted when a ``paths.revalidated`` event names their path.
A key is ``(path, variant)``; the variant separates per-user renderings of
the same path.

Every invalidation bumps a per-path generation. A load that started before
the bump does not store its result, so a revalidation that lands while a
loader is awaiting cannot be undone by the late fill.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Tuple

from app.core.events import PATHS_REVALIDATED, Event, EventBus
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

CacheKey = Tuple[str, Hashable]


class PageCache:
    def __init__(self, ttl_seconds: float = 300.0):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[CacheKey, Tuple[float, Any]] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = asyncio.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, bus: EventBus) -> None:
        """Subscribe to revalidation events on the bus."""
        self.detach()
        self._unsubscribe = bus.subscribe(PATHS_REVALIDATED, self._on_revalidated)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _is_fresh(self, stored_at: float) -> bool:
        return time.monotonic() - stored_at < self.ttl_seconds

    def _generation(self, path: str) -> Tuple[int, int]:
        return self._epoch, self._generations.get(path, 0)

    async def get_or_load(self, path: str, variant: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for the key, loading and storing it on a miss.

        Loader errors propagate and nothing is stored. A value loaded across
        an invalidation of ``path`` is returned but not stored.
        """
        key = (path, variant)
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[0]):
                LOGGER.debug(f"Page cache hit for {path}")
                return entry[1]
            generation = self._generation(path)

        value = await loader()
        async with self._lock:
            if self._generation(path) == generation:
                self._entries[key] = (time.monotonic(), value)
            else:
                LOGGER.debug(f"Discarded page load for {path} invalidated while loading")
        return value

    async def invalidate(self, paths: Iterable[str]) -> int:
        """Drop every entry stored under the given paths; returns the number removed."""
        targets = set(paths)
        async with self._lock:
            for path in targets:
                self._generations[path] = self._generations.get(path, 0) + 1
            stale = [key for key in self._entries if key[0] in targets]
            for key in stale:
                del self._entries[key]

        if stale:
            LOGGER.info(f"Evicted {len(stale)} cached pages", extra={"paths": sorted(targets)})
        return len(stale)

    async def clear(self) -> None:
        async with self._lock:
            self._epoch += 1
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def _on_revalidated(self, event: Event) -> None:
        await self.invalidate(event.payload.get("paths", []))
