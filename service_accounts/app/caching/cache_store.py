"""
Redis-backed key/value store for one cache segment.
"""

import json
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

import redis.asyncio as redis

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class RedisCacheStore:
    """JSON values in Redis under ``<segment>:<key>``.

    Store failures never propagate: reads degrade to a miss and writes to a
    no-op, with a warning logged. The backend stays the source of truth.
    """

    SCAN_BATCH = 500

    def __init__(
        self,
        redis_url: str,
        segment: str = "accounts",
        ttl_seconds: int = 14400,
        *,
        metrics: Optional["MetricsCollector"] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.segment = segment
        self.ttl_seconds = ttl_seconds
        self.metrics = metrics
        self.logger = get_logger("accounts.cache_store")
        self._redis: Optional[redis.Redis] = client

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.segment}:{key}"

    def _record_error(self, operation: str, error: Exception, **context):
        self.logger.warning(
            "Cache store operation failed",
            segment=self.segment,
            operation=operation,
            error=str(error),
            **context
        )
        if self.metrics:
            self.metrics.increment_counter("cache_errors_total", operation=operation)

    def _decode(self, raw: Optional[str]) -> Optional[Any]:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            self.logger.warning("Discarding undecodable cache payload", segment=self.segment)
            return None

    async def get(self, key: str) -> Optional[Any]:
        """Get a value, or None on a miss or store failure."""
        try:
            redis_client = await self._get_redis()
            raw = await redis_client.get(self._make_key(key))
        except Exception as exc:
            self._record_error("get", exc, key=key)
            return None
        return self._decode(raw)

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        """Get several values in one round trip, preserving order."""
        if not keys:
            return []
        try:
            redis_client = await self._get_redis()
            raws = await redis_client.mget([self._make_key(k) for k in keys])
        except Exception as exc:
            self._record_error("get_many", exc, keys_count=len(keys))
            return [None] * len(keys)
        return [self._decode(raw) for raw in raws]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value. A TTL of 0 stores without expiry."""
        return await self.set_many({key: value}, ttl=ttl)

    async def set_many(self, items: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Store several values in one pipeline."""
        if not items:
            return True
        cache_ttl = self.ttl_seconds if ttl is None else ttl
        try:
            payloads = {self._make_key(k): json.dumps(v) for k, v in items.items()}
            redis_client = await self._get_redis()
            async with redis_client.pipeline(transaction=False) as pipe:
                for full_key, payload in payloads.items():
                    if cache_ttl > 0:
                        pipe.setex(full_key, cache_ttl, payload)
                    else:
                        pipe.set(full_key, payload)
                await pipe.execute()
        except Exception as exc:
            self._record_error("set", exc, keys_count=len(items))
            return False

        self.logger.debug("Cached values", segment=self.segment, keys_count=len(items), ttl=cache_ttl)
        return True

    async def drop(self, key: str) -> bool:
        """Delete one key."""
        try:
            redis_client = await self._get_redis()
            await redis_client.delete(self._make_key(key))
        except Exception as exc:
            self._record_error("drop", exc, key=key)
            return False

        self.logger.debug("Dropped cache key", segment=self.segment, key=key)
        return True

    async def drop_namespaces(self, namespaces: Sequence[str]) -> bool:
        """Delete every key under ``<segment>:<namespace>:`` for each namespace."""
        dropped = 0
        try:
            redis_client = await self._get_redis()
            for namespace in namespaces:
                batch: List[str] = []
                async for full_key in redis_client.scan_iter(
                    match=self._make_key(f"{namespace}:*"), count=self.SCAN_BATCH
                ):
                    batch.append(full_key)
                    if len(batch) >= self.SCAN_BATCH:
                        dropped += await redis_client.delete(*batch)
                        batch = []
                if batch:
                    dropped += await redis_client.delete(*batch)
        except Exception as exc:
            self._record_error("drop_namespaces", exc)
            return False

        self.logger.info(
            "Flushed cache namespaces",
            segment=self.segment,
            namespaces=list(namespaces),
            keys_count=dropped
        )
        return True

    async def ping(self) -> bool:
        redis_client = await self._get_redis()
        return bool(await redis_client.ping())

    async def close(self):
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
