"""kv-facade - uniformly-erroring async client over a Redis-compatible store"""

from ._version import version as __version__
from .backends import Backend, InMemoryAsyncBackend, RedisBackend
from .client import RemoteKVClient
from .codec import JsonCodec
from .config import StoreConfig
from .errors import NotFoundError, StoreError, StoreFailureError
from .logs import configure_logging
from .outcome import Outcome


__all__ = [
    "Backend",
    "InMemoryAsyncBackend",
    "JsonCodec",
    "NotFoundError",
    "Outcome",
    "RedisBackend",
    "RemoteKVClient",
    "StoreConfig",
    "StoreError",
    "StoreFailureError",
    "__version__",
    "configure_logging",
]
