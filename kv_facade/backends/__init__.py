"""Backend contracts and implementations."""

from .in_memory import InMemoryAsyncBackend
from .protocol import TTL_KEY_MISSING, TTL_NO_EXPIRY, Backend
from .redis import RedisBackend


__all__ = ["TTL_KEY_MISSING", "TTL_NO_EXPIRY", "Backend", "InMemoryAsyncBackend", "RedisBackend"]
