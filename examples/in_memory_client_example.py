"""Minimal example for RemoteKVClient using the in-memory backend."""

import asyncio

from kv_facade import InMemoryAsyncBackend, RemoteKVClient


async def main() -> None:
    """Run a snapshot flow without a running store."""
    async with RemoteKVClient(backend=InMemoryAsyncBackend()) as client:
        await client.set("user:alice", {"age": 30})
        await client.list_push("jobs", "build")
        await client.hash_set("settings", "theme", "dark")
        print("snapshot:", await client.get_all())
        assert await client.refresh_key("missing", 10) is False  # noqa: S101


if __name__ == "__main__":
    asyncio.run(main())
