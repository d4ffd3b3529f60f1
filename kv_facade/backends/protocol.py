"""Backend interface definitions."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Replies of the TTL command for a missing key and for a key without expiration.
TTL_KEY_MISSING = -2
TTL_NO_EXPIRY = -1


class Backend(ABC):
    """Async key-value store interface with string, list and hash values.

    Methods mirror the store's native commands and return its raw replies;
    absence is reported through ``None``, zero counts or empty collections,
    never through exceptions.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the store handle and verify it responds."""

    @abstractmethod
    async def close(self) -> None:
        """Release the store handle."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return raw value for key, or None when key does not exist."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store raw value for key, expiring after ``ttl`` seconds when given."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Delete key and return the number of keys removed."""

    @abstractmethod
    async def list_push(self, key: str, value: str) -> int:
        """Append value to the tail of the list and return its new length."""

    @abstractmethod
    async def list_pop(self, key: str) -> str | None:
        """Remove and return the tail element, or None for an empty list."""

    @abstractmethod
    async def list_remove(self, key: str, value: str) -> int:
        """Remove every occurrence of value and return how many were removed."""

    @abstractmethod
    async def list_range(self, key: str, start: int, end: int) -> list[str]:
        """Return elements between start and end, both inclusive; -1 is the last element."""

    @abstractmethod
    async def hash_set(self, key: str, field: str, value: str) -> int:
        """Set a hash field and return 1 when the field is new."""

    @abstractmethod
    async def hash_get(self, key: str, field: str) -> str | None:
        """Return a hash field value, or None when absent."""

    @abstractmethod
    async def hash_delete(self, key: str, field: str) -> int:
        """Delete a hash field and return the number of fields removed."""

    @abstractmethod
    async def hash_get_all(self, key: str) -> dict[str, str]:
        """Return every field of the hash; empty when the key does not exist."""

    @abstractmethod
    async def scan_keys(self, pattern: str) -> list[str]:
        """List keys matching a glob-style pattern, without duplicates."""

    @abstractmethod
    async def expire(self, key: str, ttl: int) -> bool:
        """Set a TTL in seconds; False when the key does not exist."""

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Return remaining seconds, ``TTL_NO_EXPIRY`` or ``TTL_KEY_MISSING``."""

    @abstractmethod
    async def key_type(self, key: str) -> str:
        """Return the store type name: ``string``, ``list``, ``hash`` or ``none``."""
