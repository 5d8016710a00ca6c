# common/bus.py
from __future__ import annotations
from typing import Optional
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from common.logging import get_logger

log = get_logger("bus")

class MessageBus:
    """
    Thin pub/sub client: PUBLISH is fire-and-forget and nothing is retained,
    so each message is delivered at most once to whoever is subscribed.
    """

    def __init__(self, redis_url: str, client_name: Optional[str] = None):
        self._redis_url = redis_url
        self._client_name = client_name
        self._redis = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self):
        if self._redis is None:
            log.info(f"Connecting to Redis: {self._redis_url} (client={self._client_name})")
            # payloads are raw image bytes, keep responses undecoded
            r = aioredis.from_url(self._redis_url, client_name=self._client_name, decode_responses=False)
            try:
                pong = await r.ping()
                log.info(f"Redis ping: {pong}")
            except Exception as e:
                log.error(f"Redis connection failed: {e}")
                await r.close()
                raise
            self._redis = r
        return self

    async def close(self):
        if self._redis is not None:
            log.info("Closing Redis connection")
            await self._redis.close()
            self._redis = None

    async def publish(self, topic: str, payload: bytes) -> bool:
        assert self._redis is not None, "Call connect() first"
        try:
            receivers = await self._redis.publish(topic, bytes(payload))
        except (RedisError, OSError) as e:
            log.error(f"PUBLISH failed topic={topic} bytes={len(payload)}: {e}")
            return False
        log.debug(f"PUBLISH topic={topic} bytes={len(payload)} receivers={receivers}")
        return True
