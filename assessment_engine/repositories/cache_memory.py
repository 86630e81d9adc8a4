from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import time


@dataclass
class MemoryCacheEntry:
    value: str
    metadata: dict[str, object]
    expires_at: float


@dataclass
class InMemoryCacheStore:
    """Process-local CacheStore; entries expire on a monotonic clock."""

    clock: Callable[[], float] = time.monotonic
    entries: dict[str, MemoryCacheEntry] = field(default_factory=dict)

    async def get(self, key: str) -> str | None:
        entry = self.entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            self.entries.pop(key, None)
            return None
        return entry.value

    async def put(self, key: str, value: str, *, ttl_seconds: int, metadata: dict[str, object]) -> None:
        self.purge_expired()
        self.entries[key] = MemoryCacheEntry(
            value=value,
            metadata=dict(metadata),
            expires_at=self.clock() + ttl_seconds,
        )

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [key for key, entry in self.entries.items() if entry.expires_at <= now]
        for key in expired:
            del self.entries[key]
        return len(expired)

    def metadata_for(self, key: str) -> dict[str, object] | None:
        entry = self.entries.get(key)
        return None if entry is None else dict(entry.metadata)
