"""Minimal example for RemoteKVClient against a Redis-compatible store."""

import asyncio

from kv_facade import NotFoundError, RemoteKVClient, StoreConfig


async def main() -> None:
    """Run a basic set/get/list/hash/prefix flow against Redis/Dragonfly."""
    client = RemoteKVClient(StoreConfig(url="redis://redis:6379/0"), dev=True)
    async with client:
        await client.set("user:alice", {"age": 30}, ttl=60)
        print("user:", await client.get("user:alice", parse=True))
        print("ttl:", await client.get_time_to_live("user:alice"))

        await client.list_push("jobs", {"id": 1})
        await client.list_push("jobs", {"id": 2})
        print("jobs:", await client.list_get("jobs", parse=True))

        await client.hash_set("settings", "theme", "dark")
        print("settings:", await client.hash_get_all("settings", parse=True))

        print("users:", await client.get_by_prefix("user"))

        await client.delete_all("user:*")
        try:
            await client.get("user:alice")
        except NotFoundError as error:
            print("after delete_all:", error.as_record())


if __name__ == "__main__":
    asyncio.run(main())
