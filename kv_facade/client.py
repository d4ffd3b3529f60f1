"""Uniformly-erroring async client facade over a key-value store."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from kv_facade.backends import TTL_KEY_MISSING, RedisBackend
from kv_facade.codec import JsonCodec
from kv_facade.config import StoreConfig
from kv_facade.errors import NotFoundError, StoreError, classify_failures, not_found_if_empty
from kv_facade.outcome import fan_out


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from contextlib import AbstractContextManager
    from types import TracebackType

    from kv_facade.backends import Backend


logger = logging.getLogger(__name__)


class RemoteKVClient:
    """Async facade over a Redis-compatible store with one error taxonomy.

    Every operation either succeeds or raises a :class:`~kv_facade.errors.StoreError`:
    :class:`~kv_facade.errors.NotFoundError` (404) when the key, field,
    element or match is absent, and :class:`~kv_facade.errors.StoreFailureError`
    (500) for transport, protocol and decode failures.

    Values are stored as JSON text. Reads return the raw text unless
    ``parse=True`` is passed.

    Parameters
    ----------
    config
        Store connection parameters, as a ``StoreConfig`` or a plain mapping.
        Ignored when ``backend`` is given.
    dev
        When True, log every operation and failure on the ``kv_facade`` logger.
    backend
        Optional injected backend; defaults to a ``RedisBackend`` for ``config``.
    json_encoder, json_decoder
        Value codec callables.
    """

    def __init__(
        self,
        config: StoreConfig | Mapping[str, Any] | None = None,
        *,
        dev: bool = False,
        backend: Backend | None = None,
        json_encoder: Callable[[Any], str] = json.dumps,
        json_decoder: Callable[[str], Any] = json.loads,
    ) -> None:
        super().__init__()
        if isinstance(config, Mapping):
            config = StoreConfig.from_dict(dict(config))
        self.config = config if config is not None else StoreConfig()
        self.dev = dev
        self._backend = backend if backend is not None else RedisBackend(self.config)
        self._codec = JsonCodec(encoder=json_encoder, decoder=json_decoder)

    def _log(self, msg: str, *args: object) -> None:
        if self.dev:
            logger.info(msg, *args)

    def _classified(self, message: str, subject: str = "") -> AbstractContextManager[None]:
        def report(error: BaseException) -> None:
            if not self.dev:
                return
            if isinstance(error, NotFoundError):
                logger.info("%s: %s", error.message, subject)
            else:
                logger.error("%s: %s", message, subject, exc_info=error)

        return classify_failures(message, on_error=report)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the store handle."""
        with self._classified("Store connection failed"):
            await self._backend.connect()
        self._log("Connected to store")

    async def disconnect(self) -> None:
        """Release the store handle."""
        with self._classified("Store disconnection failed"):
            await self._backend.close()
        self._log("Disconnected from store")

    async def __aenter__(self) -> RemoteKVClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is None:
            await self.disconnect()
            return
        # the body's error wins over a failed disconnect
        try:
            await self.disconnect()
        except StoreError:
            logger.warning("Store disconnection failed while handling %s", type(exc).__name__, exc_info=True)

    # ------------------------------------------------------------------
    # Scalar values
    # ------------------------------------------------------------------

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store ``value`` under ``key``, expiring after ``ttl`` seconds when positive."""
        with self._classified("Error saving to store", key):
            if ttl is not None and ttl < 0:
                msg = "ttl must be a non-negative number of seconds"
                raise ValueError(msg)
            await self._backend.set(key, self._codec.encode(value), ttl or None)
        self._log("Set value for key: %s", key)

    async def get(self, key: str, parse: bool = False) -> Any:
        """Return the value of ``key``; raises ``NotFoundError`` when missing."""
        with self._classified("Error fetching from store", key):
            raw = not_found_if_empty(await self._backend.get(key), "Key not found")
            return self._codec.decode_if(raw, parse)

    async def delete(self, key: str) -> None:
        """Delete ``key``; raises ``NotFoundError`` when nothing was deleted."""
        with self._classified("Error deleting from store", key):
            _ = not_found_if_empty(await self._backend.delete(key), "Key not found")
        self._log("Deleted key: %s", key)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def list_push(self, key: str, value: Any) -> None:
        """Append ``value`` to the tail of the list, creating it when missing."""
        with self._classified("Error pushing to list", key):
            _ = await self._backend.list_push(key, self._codec.encode(value))
        self._log("Pushed value to list: %s", key)

    async def list_pop(self, key: str, parse: bool = False) -> Any:
        """Remove and return the tail element of the list."""
        with self._classified("Error popping from list", key):
            raw = not_found_if_empty(await self._backend.list_pop(key), "List is empty")
            return self._codec.decode_if(raw, parse)

    async def list_remove(self, key: str, value: Any) -> None:
        """Remove every occurrence of ``value`` from the list."""
        with self._classified("Error removing from list", key):
            removed = await self._backend.list_remove(key, self._codec.encode(value))
            _ = not_found_if_empty(removed, "Value not found in list")
        self._log("Removed value from list: %s", key)

    async def list_get(self, key: str, start: int = 0, end: int = -1, parse: bool = False) -> list[Any]:
        """Return list elements from ``start`` to ``end``, both inclusive; ``-1`` is the last element."""
        with self._classified("Error fetching from list", key):
            values = not_found_if_empty(await self._backend.list_range(key, start, end), "List is empty")
            return [self._codec.decode_if(value, parse) for value in values]

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    async def hash_set(self, key: str, field: str, value: Any) -> None:
        """Set ``field`` of the hash, creating the hash when missing."""
        with self._classified("Error saving to hash", key):
            _ = await self._backend.hash_set(key, field, self._codec.encode(value))
        self._log("Set value for field: %s", field)

    async def hash_get(self, key: str, field: str, parse: bool = False) -> Any:
        """Return the value of ``field``; raises ``NotFoundError`` when absent."""
        with self._classified("Error fetching from hash", key):
            raw = not_found_if_empty(await self._backend.hash_get(key, field), "Field not found")
            return self._codec.decode_if(raw, parse)

    async def hash_get_all(self, key: str, parse: bool = False) -> dict[str, Any]:
        """Return every field of the hash; raises ``NotFoundError`` for a missing hash."""
        with self._classified("Error fetching hash", key):
            fields = not_found_if_empty(await self._backend.hash_get_all(key), "Hash not found")
            return {field: self._codec.decode_if(value, parse) for field, value in fields.items()}

    async def hash_delete(self, key: str, field: str) -> None:
        """Delete ``field`` from the hash; raises ``NotFoundError`` when absent."""
        with self._classified("Error deleting from hash", key):
            _ = not_found_if_empty(await self._backend.hash_delete(key, field), "Field not found")
        self._log("Deleted field: %s", field)

    # ------------------------------------------------------------------
    # Expiration
    # ------------------------------------------------------------------

    async def refresh_key(self, key: str, ttl: int, *, strict: bool = False) -> bool:
        """Reset the TTL of ``key`` to ``ttl`` seconds.

        A missing key is a silent no-op returning False unless ``strict``
        is set, in which case the ``NotFoundError`` propagates. A ``ttl`` of
        zero or less is rejected as a store failure and leaves the key alone.
        Store failures always raise.
        """
        try:
            with self._classified("Error refreshing key", key):
                if ttl <= 0:
                    msg = "ttl must be a positive number of seconds"
                    raise ValueError(msg)
                _ = not_found_if_empty(await self._backend.expire(key, ttl), "Key not found")
        except NotFoundError:
            if strict:
                raise
            return False
        self._log("Refreshed key: %s", key)
        return True

    async def get_time_to_live(self, key: str) -> int:
        """Return remaining TTL seconds, or ``-1`` when ``key`` has no expiration."""
        with self._classified("Error fetching TTL", key):
            ttl = await self._backend.ttl(key)
            if ttl == TTL_KEY_MISSING:
                msg = "Key not found"
                raise NotFoundError(msg)
            return ttl

    # ------------------------------------------------------------------
    # Composite operations
    # ------------------------------------------------------------------

    async def get_by_prefix(self, prefix: str) -> list[dict[str, Any]]:
        """Return ``{key: value}`` records for every key under ``<prefix>:``.

        Values are fetched concurrently and decoded; records follow the
        store's key enumeration order. The first member read to fail is
        raised and the reads still in flight are cancelled.
        """
        with self._classified("Error fetching keys by prefix", prefix):
            keys = not_found_if_empty(await self._backend.scan_keys(f"{prefix}:*"), "Index not found")
            pairs = await fan_out(keys, lambda key: self.get(key, parse=True))
            return [{key: outcome.value} for key, outcome in pairs]

    async def get_all(self) -> list[dict[str, Any]]:
        """Return a decoded ``{key: value}`` record for every string, list and hash key.

        Keys of any other type are skipped.
        """
        with self._classified("Error fetching all keys", "*"):
            keys = not_found_if_empty(await self._backend.scan_keys("*"), "No keys found")
            readers = self._snapshot_readers()
            records: list[dict[str, Any]] = []
            for key in keys:
                reader = readers.get(await self._backend.key_type(key))
                if reader is None:
                    continue
                records.append({key: await reader(key)})
            return records

    def _snapshot_readers(self) -> dict[str, Callable[[str], Awaitable[Any]]]:
        return {
            "string": lambda key: self.get(key, parse=True),
            "list": lambda key: self.list_get(key, 0, -1, parse=True),
            "hash": lambda key: self.hash_get_all(key, parse=True),
        }

    async def delete_all(self, pattern: str = "*") -> None:
        """Delete every key matching ``pattern`` concurrently.

        Enumeration and deletion are separate steps, so a key removed by
        another writer in between makes its delete raise ``NotFoundError``.
        """
        with self._classified("Error deleting all keys", pattern):
            keys = not_found_if_empty(await self._backend.scan_keys(pattern), "No keys found")
            _ = await fan_out(keys, self.delete)
        self._log("Deleted all keys matching pattern: %s", pattern)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(backend={type(self._backend).__name__}, dev={self.dev!r})"
