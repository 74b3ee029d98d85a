import logging

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from redis.retry import Retry

from disk_backend.errors import InternalError

LOGGER = logging.getLogger(__name__)


class CacheError(InternalError):
    default_message = "Cache is unavailable"


def build_redis_client(url: str) -> redis.Redis:
    # Capped reconnect backoff; the core itself never retries.
    retry = Retry(ExponentialBackoff(cap=2, base=0.01), retries=3)
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        retry=retry,
        retry_on_error=[ConnectionError, TimeoutError],
        socket_keepalive=True,
        health_check_interval=30,
    )


class Cache:
    """Key/value cache with per-key TTLs backed by Redis."""

    def __init__(self, client: redis.Redis, key_prefix: str = "disk:") -> None:
        self._client = client
        self._key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        try:
            if ttl_seconds is not None:
                self._client.set(self._make_key(key), value, ex=ttl_seconds)
            else:
                self._client.set(self._make_key(key), value)
        except RedisError as exc:
            LOGGER.error("Cache put failed key=%s error=%s", key, exc)
            raise CacheError() from exc

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(self._make_key(key))
        except RedisError as exc:
            LOGGER.error("Cache get failed key=%s error=%s", key, exc)
            raise CacheError() from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def pop(self, key: str) -> str | None:
        """Read and remove a key in one round trip (GETDEL)."""
        try:
            value = self._client.getdel(self._make_key(key))
        except RedisError as exc:
            LOGGER.error("Cache pop failed key=%s error=%s", key, exc)
            raise CacheError() from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def delete(self, key: str) -> bool:
        try:
            return self._client.delete(self._make_key(key)) > 0
        except RedisError as exc:
            LOGGER.error("Cache delete failed key=%s error=%s", key, exc)
            raise CacheError() from exc

    def expire(self, key: str, ttl_seconds: int) -> bool:
        try:
            return bool(self._client.expire(self._make_key(key), ttl_seconds))
        except RedisError as exc:
            LOGGER.error("Cache expire failed key=%s error=%s", key, exc)
            raise CacheError() from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as exc:
            LOGGER.warning("Cache health check failed: %s", exc)
            return False

    def close(self) -> None:
        self._client.close()
