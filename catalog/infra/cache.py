"""View cache with glob-pattern invalidation.

Keys are built with CacheKey so the read side (lookups) and the write side
(invalidation patterns) always agree on the shape:

    <entity>:<qualifier>=<value>[:<qualifier>=<value>...][:locale=<loc>]

Values are stored as JSON. A cached None means "known absent"; only the
MISS sentinel means "not cached".

Two backends share the same interface:
- RedisCache: redis.asyncio, SCAN then pipelined DEL for invalidation
- MemoryCache: in-process dict with Redis glob semantics (tests, local dev)
"""

import json
import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from catalog.infra.logging import get_logger

logger = get_logger(__name__)

_GLOB_CHARS = frozenset("*?[]\\")


class _Miss:
    """Sentinel type for cache misses."""

    _instance: "_Miss | None" = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


def escape_glob(value: str) -> str:
    """Backslash-escape glob metacharacters so a value matches literally."""
    return "".join(f"\\{ch}" if ch in _GLOB_CHARS else ch for ch in value)


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class CacheKey:
    """Typed cache key.

    Attributes:
        entity: Entity or collection name (e.g. "fruit", "fruits")
        qualifiers: Ordered (name, value) pairs. A None value renders as a
            bare segment, e.g. ("count", None) -> "count"
        locale: Locale suffix, omitted when None
    """

    entity: str
    qualifiers: tuple[tuple[str, Any], ...] = ()
    locale: str | None = None

    @classmethod
    def of(cls, entity: str, *, locale: str | None = None, **qualifiers: Any) -> "CacheKey":
        """Build a key from keyword qualifiers (insertion order is kept)."""
        return cls(entity=entity, qualifiers=tuple(qualifiers.items()), locale=locale)

    def segments(self) -> list[str]:
        parts = [self.entity]
        for name, value in self.qualifiers:
            parts.append(name if value is None else f"{name}={_render_value(value)}")
        if self.locale is not None:
            parts.append(f"locale={self.locale}")
        return parts

    def render(self) -> str:
        return ":".join(self.segments())

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def family(cls, entity: str, **qualifiers: Any) -> str:
        """Pattern matching every key of entity that starts with these qualifiers.

        Example:
            CacheKey.family("fruit", name="Pear") -> "fruit:name=Pear:*"
        """
        segments = cls.of(entity, **qualifiers).segments()
        return ":".join(escape_glob(s) for s in segments) + ":*"

    @staticmethod
    def space(entity: str) -> str:
        """Pattern matching every key of an entity or collection."""
        return f"{escape_glob(entity)}:*"


def _render_key(key: "CacheKey | str") -> str:
    return key.render() if isinstance(key, CacheKey) else key


def _encode(value: Any) -> str:
    return json.dumps(value, default=str)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a Redis glob pattern (*, ?, [..], backslash escapes) to a regex."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1:end].replace("\\", "\\\\")
                if body.startswith("^"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.DOTALL)


class Cache(Protocol):
    """Cache contract used by the repositories."""

    async def get(self, key: CacheKey | str) -> Any: ...

    async def set(self, key: CacheKey | str, value: Any) -> None: ...

    async def invalidate(self, pattern: str) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisCache:
    """Redis-backed view cache."""

    def __init__(
        self,
        client: aioredis.Redis,
        prefix: str = "",
        ttl_seconds: int | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._ttl = ttl_seconds

    @classmethod
    def from_url(cls, url: str, prefix: str = "", ttl_seconds: int | None = None) -> "RedisCache":
        client = aioredis.from_url(url, decode_responses=True)
        return cls(client, prefix=prefix, ttl_seconds=ttl_seconds)

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    def _key(self, key: CacheKey | str) -> str:
        return f"{self._prefix}{_render_key(key)}"

    async def get(self, key: CacheKey | str) -> Any:
        """Return the cached value or MISS. Redis errors degrade to a miss."""
        full_key = self._key(key)
        try:
            raw = await self._client.get(full_key)
        except RedisError as e:
            logger.warning("Cache read failed", key=full_key, error=str(e))
            return MISS
        if raw is None:
            return MISS
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry", key=full_key)
            return MISS

    async def set(self, key: CacheKey | str, value: Any) -> None:
        full_key = self._key(key)
        try:
            await self._client.set(full_key, _encode(value), ex=self._ttl)
        except RedisError as e:
            logger.warning("Cache write failed", key=full_key, error=str(e))

    async def invalidate(self, pattern: str) -> int:
        """Delete every key matching pattern.

        Enumerates with SCAN and deletes in one pipeline. A key written
        between the scan and the delete may survive.

        Returns:
            Number of keys removed

        Raises:
            RedisError: If Redis is unreachable
        """
        full_pattern = escape_glob(self._prefix) + pattern
        keys = [k async for k in self._client.scan_iter(match=full_pattern, count=500)]
        if not keys:
            return 0
        async with self._client.pipeline(transaction=False) as pipe:
            for k in keys:
                pipe.delete(k)
            await pipe.execute()
        logger.debug("Cache invalidated", pattern=full_pattern, keys=len(keys))
        return len(keys)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


class MemoryCache:
    """In-process cache with the same semantics as RedisCache."""

    def __init__(self, prefix: str = "", ttl_seconds: int | None = None) -> None:
        self._prefix = prefix
        self._ttl = ttl_seconds
        self._data: dict[str, tuple[str, float | None]] = {}

    def _key(self, key: CacheKey | str) -> str:
        return f"{self._prefix}{_render_key(key)}"

    def keys(self) -> list[str]:
        """Live keys, mainly for assertions in tests."""
        now = time.monotonic()
        return [k for k, (_, exp) in self._data.items() if exp is None or exp > now]

    async def get(self, key: CacheKey | str) -> Any:
        full_key = self._key(key)
        entry = self._data.get(full_key)
        if entry is None:
            return MISS
        raw, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[full_key]
            return MISS
        return json.loads(raw)

    async def set(self, key: CacheKey | str, value: Any) -> None:
        expires_at = time.monotonic() + self._ttl if self._ttl else None
        self._data[self._key(key)] = (_encode(value), expires_at)

    async def invalidate(self, pattern: str) -> int:
        regex = glob_to_regex(escape_glob(self._prefix) + pattern)
        matched = [k for k in self._data if regex.fullmatch(k)]
        for k in matched:
            del self._data[k]
        return len(matched)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()
