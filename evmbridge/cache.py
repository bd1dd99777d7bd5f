import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """In-memory LRU cache with per-entry expiry.

    ``get_or_load`` coalesces concurrent misses for the same key, so a route
    search that prices several L2s sharing one native coin issues one
    upstream request.
    """

    def __init__(
        self,
        default_ttl: int = 300,
        max_size: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def _live(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            self._store(key, value, ttl)

    def _store(self, key: str, value: Any, ttl: Optional[int]) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + (ttl or self.default_ttl))
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value or await ``loader`` once for all concurrent callers.

        ``None`` results are returned but not cached. Loader exceptions
        propagate to every waiter.
        """
        async with self._lock:
            entry = self._live(key)
            if entry is not None:
                self.hits += 1
                return entry.value
            self.misses += 1
            pending = self._inflight.get(key)
            owner = pending is None
            if owner:
                pending = asyncio.get_running_loop().create_future()
                self._inflight[key] = pending

        if not owner:
            return await asyncio.shield(pending)

        try:
            value = await loader()
        except Exception as exc:
            pending.set_exception(exc)
            # consumed here so a failure nobody awaited is not logged at GC
            pending.exception()
            raise
        else:
            pending.set_result(value)
            if value is not None:
                async with self._lock:
                    self._store(key, value, ttl)
            return value
        finally:
            if not pending.done():
                pending.cancel()
            async with self._lock:
                self._inflight.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}
