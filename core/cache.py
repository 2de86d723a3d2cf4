"""
Thin Redis wrapper used for login-attempt counters and access-token
validity markers.

Every redis failure is re-raised as StorageUnavailable so callers deal with a
single outage type; deciding whether an outage is fatal is up to them.
"""

from redis import Redis, RedisError

from core.exceptions import StorageUnavailable


class KeyValueCache:

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> "KeyValueCache":
        client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def increment_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """
        Increment `key` and (re)set its TTL in one round trip.

        Returns:
            The counter value after the increment
        """
        try:
            pipe = self.client.pipeline()
            pipe.incr(key)
            pipe.expire(key, max(1, int(ttl_seconds)))
            value, _ = pipe.execute()
        except RedisError as e:
            raise StorageUnavailable() from e
        return int(value)

    def get_int(self, key: str) -> int:
        try:
            value = self.client.get(key)
        except RedisError as e:
            raise StorageUnavailable() from e
        return int(value) if value is not None else 0

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.set(key, value, ex=max(1, int(ttl_seconds)))
        except RedisError as e:
            raise StorageUnavailable() from e

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except RedisError as e:
            raise StorageUnavailable() from e

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self.client.delete(*keys))
        except RedisError as e:
            raise StorageUnavailable() from e

