from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import json
import logging
import time

from assessment_engine.domain.contracts import CacheStore
from assessment_engine.domain.errors import CacheError
from assessment_engine.domain.hashing import CacheNamespace, cache_key

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class JsonCache:
    """Namespaced JSON view over a CacheStore.

    A failing or corrupt read is reported as a miss and a failing write is
    logged and skipped, so the cache can never fail a stage.
    """

    store: CacheStore
    cache_version: str
    clock_ms: Callable[[], int] = _now_ms

    def key(self, namespace: CacheNamespace, key_hash: str) -> str:
        return cache_key(cache_version=self.cache_version, namespace=namespace, key_hash=key_hash)

    async def get_json(self, namespace: CacheNamespace, key_hash: str) -> object | None:
        key = self.key(namespace, key_hash)
        try:
            raw = await self.store.get(key)
        except CacheError as exc:
            logger.warning("cache read failed, treating as miss: %s", exc, extra={"cache_key": key})
            return None
        if not raw:
            logger.info("cache miss", extra={"cache_key": key})
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cache entry is not valid JSON, treating as miss", extra={"cache_key": key})
            return None
        if value is None:
            return None
        logger.info("cache hit", extra={"cache_key": key})
        return value

    async def exists(self, namespace: CacheNamespace, key_hash: str) -> bool:
        return await self.get_json(namespace, key_hash) is not None

    async def put_json(self, namespace: CacheNamespace, key_hash: str, value: object, *, ttl_seconds: int) -> bool:
        key = self.key(namespace, key_hash)
        metadata: dict[str, object] = {"created_at_ms": self.clock_ms(), "version": self.cache_version}
        try:
            await self.store.put(
                key,
                json.dumps(value, ensure_ascii=False),
                ttl_seconds=ttl_seconds,
                metadata=metadata,
            )
        except CacheError as exc:
            logger.warning("cache write failed, result not persisted: %s", exc, extra={"cache_key": key})
            return False
        logger.info("cache set", extra={"cache_key": key})
        return True
