from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from kv_facade.backends.in_memory import InMemoryAsyncBackend
from kv_facade.client import RemoteKVClient
from kv_facade.errors import NotFoundError, StoreFailureError


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _BrokenBackend(InMemoryAsyncBackend):
    async def get(self, key: str) -> str | None:
        raise ConnectionError("connection reset by peer")

    async def connect(self) -> None:
        raise OSError("connection refused")


class _UnclosableBackend(InMemoryAsyncBackend):
    async def close(self) -> None:
        raise ConnectionError("connection reset by peer")


@pytest.fixture
def clock() -> _FakeClock:
    return _FakeClock()


@pytest_asyncio.fixture
async def client(clock: _FakeClock) -> AsyncGenerator[RemoteKVClient]:
    test_client = RemoteKVClient(backend=InMemoryAsyncBackend(clock=clock))
    await test_client.connect()
    try:
        yield test_client
    finally:
        await test_client.disconnect()


@pytest.mark.asyncio
async def test_set_and_get_parsed(client: RemoteKVClient) -> None:
    await client.set("test:key1", {"name": "John"})
    assert await client.get("test:key1", parse=True) == {"name": "John"}


@pytest.mark.asyncio
async def test_get_without_parse_returns_encoded_text(client: RemoteKVClient) -> None:
    await client.set("test:key1", {"name": "John"})
    assert await client.get("test:key1") == '{"name": "John"}'


@pytest.mark.asyncio
async def test_get_missing_key_is_not_found(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="Key not found") as excinfo:
        await client.get("non:existent")
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_set_with_ttl_expires(client: RemoteKVClient, clock: _FakeClock) -> None:
    await client.set("test:key2", "temporary", ttl=1)
    assert await client.get("test:key2", parse=True) == "temporary"

    clock.advance(1.1)
    with pytest.raises(NotFoundError, match="Key not found"):
        await client.get("test:key2")


@pytest.mark.asyncio
async def test_set_with_zero_ttl_never_expires(client: RemoteKVClient) -> None:
    await client.set("test:key", "forever", ttl=0)
    assert await client.get_time_to_live("test:key") == -1


@pytest.mark.asyncio
async def test_set_with_negative_ttl_is_store_failure(client: RemoteKVClient) -> None:
    with pytest.raises(StoreFailureError, match="Error saving to store") as excinfo:
        await client.set("test:key", "value", ttl=-5)
    assert isinstance(excinfo.value.cause, ValueError)


@pytest.mark.asyncio
async def test_set_unserializable_value_is_store_failure(client: RemoteKVClient) -> None:
    cyclic: list[object] = []
    cyclic.append(cyclic)

    with pytest.raises(StoreFailureError, match="Error saving to store"):
        await client.set("test:cyclic", cyclic)


@pytest.mark.asyncio
async def test_delete_then_get_is_not_found(client: RemoteKVClient) -> None:
    await client.set("test:key3", "to be deleted")
    await client.delete("test:key3")

    with pytest.raises(NotFoundError, match="Key not found"):
        await client.get("test:key3")


@pytest.mark.asyncio
async def test_delete_missing_key_is_not_found(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="Key not found"):
        await client.delete("non:existent")


@pytest.mark.asyncio
async def test_malformed_value_with_parse_is_store_failure(client: RemoteKVClient) -> None:
    await client._backend.set("test:raw", "{not json")

    assert await client.get("test:raw") == "{not json"
    with pytest.raises(StoreFailureError, match="Error fetching from store") as excinfo:
        await client.get("test:raw", parse=True)
    assert excinfo.value.status_code == 500
    assert excinfo.value.cause is not None


@pytest.mark.asyncio
async def test_list_push_pop_uses_tail(client: RemoteKVClient) -> None:
    await client.list_push("test:list1", "item1")
    await client.list_push("test:list1", "item2")

    assert await client.list_pop("test:list1", parse=True) == "item2"
    assert await client.list_pop("test:list1", parse=True) == "item1"
    with pytest.raises(NotFoundError, match="List is empty"):
        await client.list_pop("test:list1")


@pytest.mark.asyncio
async def test_list_pop_missing_list_is_not_found(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="List is empty"):
        await client.list_pop("empty:list")


@pytest.mark.asyncio
async def test_list_remove_removes_every_occurrence(client: RemoteKVClient) -> None:
    for item in ["keep", "remove", "keep", "remove"]:
        await client.list_push("test:list2", item)

    await client.list_remove("test:list2", "remove")
    assert await client.list_get("test:list2", 0, -1, parse=True) == ["keep", "keep"]


@pytest.mark.asyncio
async def test_list_remove_missing_value_is_not_found(client: RemoteKVClient) -> None:
    await client.list_push("test:list4", "existing")
    with pytest.raises(NotFoundError, match="Value not found in list"):
        await client.list_remove("test:list4", "non-existent")


@pytest.mark.asyncio
async def test_list_get_range_is_inclusive(client: RemoteKVClient) -> None:
    for item in ["first", "second", "third"]:
        await client.list_push("test:list3", item)

    assert await client.list_get("test:list3", 1, 2, parse=True) == ["second", "third"]
    assert await client.list_get("test:list3", parse=True) == ["first", "second", "third"]
    assert await client.list_get("test:list3", 0, 0) == ['"first"']


@pytest.mark.asyncio
async def test_list_get_empty_range_is_not_found(client: RemoteKVClient) -> None:
    await client.list_push("test:list5", "only")
    with pytest.raises(NotFoundError, match="List is empty"):
        await client.list_get("test:list5", 5, 10)


@pytest.mark.asyncio
async def test_emptied_list_behaves_as_missing_key(client: RemoteKVClient) -> None:
    await client.list_push("test:list6", "only")
    await client.list_remove("test:list6", "only")

    with pytest.raises(NotFoundError):
        await client.list_get("test:list6")
    with pytest.raises(NotFoundError):
        await client.get_time_to_live("test:list6")


@pytest.mark.asyncio
async def test_hash_set_and_get(client: RemoteKVClient) -> None:
    await client.hash_set("test:hash1", "field1", {"value": "test"})
    assert await client.hash_get("test:hash1", "field1", parse=True) == {"value": "test"}


@pytest.mark.asyncio
async def test_hash_get_missing_field_is_not_found(client: RemoteKVClient) -> None:
    await client.hash_set("test:hash3", "existing", "value")
    with pytest.raises(NotFoundError, match="Field not found"):
        await client.hash_get("test:hash3", "non-existent")


@pytest.mark.asyncio
async def test_hash_delete_removes_only_that_field(client: RemoteKVClient) -> None:
    await client.hash_set("test:hash2", "field1", "to be deleted")
    await client.hash_set("test:hash2", "field2", "kept")

    await client.hash_delete("test:hash2", "field1")

    with pytest.raises(NotFoundError, match="Field not found"):
        await client.hash_get("test:hash2", "field1")
    assert await client.hash_get("test:hash2", "field2", parse=True) == "kept"
    with pytest.raises(NotFoundError, match="Field not found"):
        await client.hash_delete("test:hash2", "field1")


@pytest.mark.asyncio
async def test_hash_get_all_decodes_every_field(client: RemoteKVClient) -> None:
    await client.hash_set("test:hash4", "a", 1)
    await client.hash_set("test:hash4", "b", [1, 2])

    assert await client.hash_get_all("test:hash4", parse=True) == {"a": 1, "b": [1, 2]}
    assert await client.hash_get_all("test:hash4") == {"a": "1", "b": "[1, 2]"}


@pytest.mark.asyncio
async def test_hash_get_all_missing_hash_is_not_found(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="Hash not found"):
        await client.hash_get_all("test:nohash")


@pytest.mark.asyncio
async def test_wrong_type_is_store_failure(client: RemoteKVClient) -> None:
    await client.set("test:string", "value")
    with pytest.raises(StoreFailureError, match="Error pushing to list"):
        await client.list_push("test:string", "item")


@pytest.mark.asyncio
async def test_get_time_to_live(client: RemoteKVClient) -> None:
    await client.set("test:ttl", "expiring soon", ttl=10)
    ttl = await client.get_time_to_live("test:ttl")
    assert 0 < ttl <= 10


@pytest.mark.asyncio
async def test_get_time_to_live_missing_key_is_not_found(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="Key not found"):
        await client.get_time_to_live("non:existent")


@pytest.mark.asyncio
async def test_refresh_key_extends_ttl(client: RemoteKVClient, clock: _FakeClock) -> None:
    await client.set("test:session", "abc", ttl=5)
    clock.advance(4)

    assert await client.refresh_key("test:session", 60) is True
    clock.advance(10)
    assert await client.get("test:session", parse=True) == "abc"


@pytest.mark.asyncio
async def test_refresh_key_missing_key_is_silent_by_default(client: RemoteKVClient) -> None:
    assert await client.refresh_key("non:existent", 60) is False


@pytest.mark.asyncio
async def test_refresh_key_missing_key_raises_when_strict(client: RemoteKVClient) -> None:
    with pytest.raises(NotFoundError, match="Key not found"):
        await client.refresh_key("non:existent", 60, strict=True)


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [0, -1])
async def test_refresh_key_non_positive_ttl_keeps_key(client: RemoteKVClient, ttl: int) -> None:
    await client.set("test:session", "abc", ttl=30)

    with pytest.raises(StoreFailureError, match="Error refreshing key") as excinfo:
        await client.refresh_key("test:session", ttl)
    assert isinstance(excinfo.value.cause, ValueError)

    assert await client.get("test:session", parse=True) == "abc"
    assert await client.get_time_to_live("test:session") == 30


@pytest.mark.asyncio
async def test_transport_failure_is_store_failure() -> None:
    client = RemoteKVClient(backend=_BrokenBackend())

    with pytest.raises(StoreFailureError, match="Error fetching from store") as excinfo:
        await client.get("any")
    assert isinstance(excinfo.value.cause, ConnectionError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_connect_failure_is_store_failure() -> None:
    client = RemoteKVClient(backend=_BrokenBackend())

    with pytest.raises(StoreFailureError, match="Store connection failed"):
        await client.connect()


@pytest.mark.asyncio
async def test_async_context_manager_connects_and_disconnects() -> None:
    async with RemoteKVClient(backend=InMemoryAsyncBackend()) as client:
        await client.set("k", "v")
        assert await client.get("k", parse=True) == "v"


@pytest.mark.asyncio
async def test_context_manager_keeps_body_error_when_disconnect_fails(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="kv_facade")

    with pytest.raises(NotFoundError, match="Key not found"):
        async with RemoteKVClient(backend=_UnclosableBackend()) as client:
            await client.get("missing")

    warnings = [record for record in caplog.records if record.name.startswith("kv_facade")]
    assert [record.getMessage() for record in warnings] == [
        "Store disconnection failed while handling NotFoundError"
    ]


@pytest.mark.asyncio
async def test_context_manager_raises_disconnect_failure_after_clean_body() -> None:
    with pytest.raises(StoreFailureError, match="Store disconnection failed"):
        async with RemoteKVClient(backend=_UnclosableBackend()) as client:
            await client.set("k", "v")


@pytest.mark.asyncio
async def test_clients_against_different_backends_are_isolated() -> None:
    first = RemoteKVClient(backend=InMemoryAsyncBackend())
    second = RemoteKVClient(backend=InMemoryAsyncBackend())

    await first.set("shared", 1)
    with pytest.raises(NotFoundError):
        await second.get("shared")


@pytest.mark.asyncio
async def test_config_mapping_is_validated() -> None:
    client = RemoteKVClient({"host": "cache.internal", "port": 6380}, backend=InMemoryAsyncBackend())
    assert client.config.host == "cache.internal"
    assert client.config.port == 6380


@pytest.mark.asyncio
async def test_dev_flag_logs_operations(caplog: pytest.LogCaptureFixture) -> None:
    client = RemoteKVClient(backend=InMemoryAsyncBackend(), dev=True)

    with caplog.at_level(logging.INFO, logger="kv_facade"):
        await client.set("test:logged", "v")
        with pytest.raises(NotFoundError):
            await client.get("test:missing")

    assert "Set value for key: test:logged" in caplog.text
    assert "Key not found: test:missing" in caplog.text


@pytest.mark.asyncio
async def test_without_dev_flag_nothing_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    client = RemoteKVClient(backend=_BrokenBackend())

    with caplog.at_level(logging.DEBUG, logger="kv_facade"), pytest.raises(StoreFailureError):
        await client.get("any")

    assert [record for record in caplog.records if record.name.startswith("kv_facade")] == []


@pytest.mark.asyncio
async def test_dev_flag_logs_failures_with_traceback(caplog: pytest.LogCaptureFixture) -> None:
    client = RemoteKVClient(backend=_BrokenBackend(), dev=True)

    with caplog.at_level(logging.INFO, logger="kv_facade"), pytest.raises(StoreFailureError):
        await client.get("any")

    [record] = [record for record in caplog.records if record.name.startswith("kv_facade")]
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None
