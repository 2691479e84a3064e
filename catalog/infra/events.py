"""Change-event publishing.

Channels follow created<Entity>, updated<Entity>:id=<id> and
deleted<Entity>:id=<id>. The payload is {"<event>": view}, JSON encoded.
"""

import json
from typing import Any, Protocol

import redis.asyncio as aioredis

from catalog.infra.logging import get_logger

logger = get_logger(__name__)


class EventBus(Protocol):
    """Publisher contract used by the repositories."""

    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class RedisEventBus:
    """Publishes change events over Redis PUBLISH."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisEventBus":
        return cls(aioredis.from_url(url, decode_responses=True))

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        receivers = await self._client.publish(channel, json.dumps(payload, default=str))
        logger.debug("Event published", channel=channel, receivers=receivers)

    async def close(self) -> None:
        await self._client.aclose()


class MemoryEventBus:
    """Records published events in order."""

    def __init__(self) -> None:
        self.published: list[tuple[str, dict[str, Any]]] = []

    @property
    def channels(self) -> list[str]:
        return [channel for channel, _ in self.published]

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        self.published.append((channel, payload))

    def clear(self) -> None:
        self.published.clear()

    async def close(self) -> None:
        self.published.clear()
