"""Redis-compatible backend implementation."""

from __future__ import annotations

from inspect import isawaitable
from typing import Any, override

import redis.asyncio as redis_async

from kv_facade.codec import normalize_text
from kv_facade.config import StoreConfig

from .protocol import Backend


class RedisBackend(Backend):
    """Redis-compatible async backend using ``redis.asyncio`` client APIs.

    The client handle is created on :meth:`connect` and dropped on
    :meth:`close`, so each backend owns exactly one handle.
    """

    def __init__(self, config: StoreConfig | None = None, *, client: Any | None = None) -> None:
        """Create a backend from a store config or an injected async client.

        Parameters
        ----------
        config
            Connection parameters used when ``client`` is not provided.
        client
            Optional injected client exposing the ``redis.asyncio.Redis`` API.
            It is usable right away and reused across reconnects.
        """
        super().__init__()
        self._config = config if config is not None else StoreConfig()
        self._injected_client = client
        self._client: Any | None = client

    def _client_or_raise(self) -> Any:
        if self._client is None:
            msg = "redis client is not connected"
            raise RuntimeError(msg)
        return self._client

    def _create_client(self) -> Any:
        if self._injected_client is not None:
            return self._injected_client
        kwargs = self._config.client_kwargs()
        if self._config.url is not None:
            return redis_async.from_url(self._config.url, **kwargs)
        return redis_async.Redis(**kwargs)

    @override
    async def connect(self) -> None:
        """Create the client handle and verify it with PING."""
        if self._client is None:
            self._client = self._create_client()
        _ = await self._client.ping()

    @override
    async def close(self) -> None:
        """Release the client handle."""
        client, self._client = self._client, None
        if client is None:
            return

        close_method = getattr(client, "aclose", None)
        if close_method is None:
            close_method = getattr(client, "close", None)
        if close_method is None:
            return

        maybe_awaitable = close_method()
        if isawaitable(maybe_awaitable):
            await maybe_awaitable

    @override
    async def get(self, key: str) -> str | None:
        return normalize_text(await self._client_or_raise().get(key))

    @override
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        client = self._client_or_raise()
        if ttl:
            await client.set(key, value, ex=ttl)
        else:
            await client.set(key, value)

    @override
    async def delete(self, key: str) -> int:
        return int(await self._client_or_raise().delete(key))

    @override
    async def list_push(self, key: str, value: str) -> int:
        return int(await self._client_or_raise().rpush(key, value))

    @override
    async def list_pop(self, key: str) -> str | None:
        return normalize_text(await self._client_or_raise().rpop(key))

    @override
    async def list_remove(self, key: str, value: str) -> int:
        # count=0 removes every occurrence
        return int(await self._client_or_raise().lrem(key, 0, value))

    @override
    async def list_range(self, key: str, start: int, end: int) -> list[str]:
        values = await self._client_or_raise().lrange(key, start, end)
        return [normalize_text(value) or "" for value in values]

    @override
    async def hash_set(self, key: str, field: str, value: str) -> int:
        return int(await self._client_or_raise().hset(key, field, value))

    @override
    async def hash_get(self, key: str, field: str) -> str | None:
        return normalize_text(await self._client_or_raise().hget(key, field))

    @override
    async def hash_delete(self, key: str, field: str) -> int:
        return int(await self._client_or_raise().hdel(key, field))

    @override
    async def hash_get_all(self, key: str) -> dict[str, str]:
        values = await self._client_or_raise().hgetall(key)
        return {normalize_text(field) or "": normalize_text(value) or "" for field, value in values.items()}

    @override
    async def scan_keys(self, pattern: str) -> list[str]:
        """List keys matching pattern in SCAN order; SCAN may repeat keys, so they are deduplicated."""
        keys: dict[str, None] = {}
        async for key in self._client_or_raise().scan_iter(match=pattern):
            normalized = normalize_text(key)
            if normalized is not None:
                keys.setdefault(normalized)
        return list(keys)

    @override
    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self._client_or_raise().expire(key, ttl))

    @override
    async def ttl(self, key: str) -> int:
        return int(await self._client_or_raise().ttl(key))

    @override
    async def key_type(self, key: str) -> str:
        return normalize_text(await self._client_or_raise().type(key)) or "none"
