"""In-memory backend implementation."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, override

from .protocol import TTL_KEY_MISSING, TTL_NO_EXPIRY, Backend


if TYPE_CHECKING:
    from collections.abc import Callable


_WRONG_TYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


@dataclass
class _Entry:
    """A stored string, list or hash with optional expiration."""

    value: str | list[str] | dict[str, str]
    expires_at: float | None = None

    @property
    def type_name(self) -> str:
        if isinstance(self.value, list):
            return "list"
        if isinstance(self.value, dict):
            return "hash"
        return "string"


class InMemoryAsyncBackend(Backend):
    """Simple in-memory backend for local development and tests.

    Follows the store's conventions: list and hash keys disappear once empty,
    expired keys behave as missing, and patterns use glob matching
    (``fnmatch`` rules, so ``[!x]`` negates instead of ``[^x]``).
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self._store: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _live(self, key: str) -> _Entry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._store[key]
            return None
        return entry

    def _typed(self, key: str, kind: type) -> _Entry | None:
        entry = self._live(key)
        if entry is not None and not isinstance(entry.value, kind):
            raise TypeError(_WRONG_TYPE)
        return entry

    def _drop_if_empty(self, key: str, entry: _Entry) -> None:
        if not entry.value:
            del self._store[key]

    @override
    async def connect(self) -> None:
        return

    @override
    async def close(self) -> None:
        return

    @override
    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._typed(key, str)
            return entry.value if entry is not None else None  # type: ignore[return-value]

    @override
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        async with self._lock:
            self._store[key] = _Entry(value=value, expires_at=expires_at)

    @override
    async def delete(self, key: str) -> int:
        async with self._lock:
            if self._live(key) is None:
                return 0
            del self._store[key]
            return 1

    @override
    async def list_push(self, key: str, value: str) -> int:
        async with self._lock:
            entry = self._typed(key, list)
            if entry is None:
                entry = self._store[key] = _Entry(value=[])
            items: list[str] = entry.value  # type: ignore[assignment]
            items.append(value)
            return len(items)

    @override
    async def list_pop(self, key: str) -> str | None:
        async with self._lock:
            entry = self._typed(key, list)
            if entry is None:
                return None
            value = entry.value.pop()  # type: ignore[union-attr]
            self._drop_if_empty(key, entry)
            return value  # type: ignore[no-any-return]

    @override
    async def list_remove(self, key: str, value: str) -> int:
        async with self._lock:
            entry = self._typed(key, list)
            if entry is None:
                return 0
            kept = [item for item in entry.value if item != value]
            removed = len(entry.value) - len(kept)
            entry.value = kept
            self._drop_if_empty(key, entry)
            return removed

    @override
    async def list_range(self, key: str, start: int, end: int) -> list[str]:
        async with self._lock:
            entry = self._typed(key, list)
            if entry is None:
                return []
            items: list[str] = entry.value  # type: ignore[assignment]
            length = len(items)
            if start < 0:
                start = max(length + start, 0)
            if end < 0:
                end = length + end
            end = min(end, length - 1)
            if start > end:
                return []
            return items[start : end + 1]

    @override
    async def hash_set(self, key: str, field: str, value: str) -> int:
        async with self._lock:
            entry = self._typed(key, dict)
            if entry is None:
                entry = self._store[key] = _Entry(value={})
            fields: dict[str, str] = entry.value  # type: ignore[assignment]
            is_new = field not in fields
            fields[field] = value
            return int(is_new)

    @override
    async def hash_get(self, key: str, field: str) -> str | None:
        async with self._lock:
            entry = self._typed(key, dict)
            if entry is None:
                return None
            return entry.value.get(field)  # type: ignore[union-attr]

    @override
    async def hash_delete(self, key: str, field: str) -> int:
        async with self._lock:
            entry = self._typed(key, dict)
            if entry is None or field not in entry.value:
                return 0
            del entry.value[field]  # type: ignore[arg-type]
            self._drop_if_empty(key, entry)
            return 1

    @override
    async def hash_get_all(self, key: str) -> dict[str, str]:
        async with self._lock:
            entry = self._typed(key, dict)
            if entry is None:
                return {}
            return dict(entry.value)  # type: ignore[arg-type]

    @override
    async def scan_keys(self, pattern: str) -> list[str]:
        """List matching keys in sorted order."""
        async with self._lock:
            live = [key for key in list(self._store) if self._live(key) is not None]
        return sorted(key for key in live if fnmatchcase(key, pattern))

    @override
    async def expire(self, key: str, ttl: int) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            if ttl <= 0:
                del self._store[key]
            else:
                entry.expires_at = self._clock() + ttl
            return True

    @override
    async def ttl(self, key: str) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return TTL_KEY_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return max(round(entry.expires_at - self._clock()), 0)

    @override
    async def key_type(self, key: str) -> str:
        async with self._lock:
            entry = self._live(key)
            return entry.type_name if entry is not None else "none"
