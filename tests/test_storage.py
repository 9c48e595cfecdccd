"""
Storage Tests

Every backend is run against the same contract:
- most-recent-first ordering
- upsert by namespace (idempotent re-save)
- 50-entry cap with oldest eviction
- delete
And the registry never lets a backend failure escape.
"""

import json

import pytest

from sitechat_server.config import Settings
from sitechat_server.storage import (
    FileStorageAdapter,
    IndexRegistry,
    MemoryStorageAdapter,
    RedisStorageAdapter,
    SiteIndexMetadata,
    StorageAdapter,
    StorageErrorKind,
    create_storage_adapter,
)
from sitechat_server.storage.redis_adapter import INDEXES_KEY, index_key


class FakeRedis:
    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)

    async def aclose(self):
        pass


class BrokenAdapter(StorageAdapter):
    name = "broken"

    async def get_indexes(self):
        raise ConnectionError("store unreachable")

    async def get_index(self, namespace):
        raise ConnectionError("store unreachable")

    async def save_index(self, index):
        raise ConnectionError("store unreachable")

    async def delete_index(self, namespace):
        raise ConnectionError("store unreachable")


def make_index(n: int, title: str = "Site") -> SiteIndexMetadata:
    return SiteIndexMetadata(
        url=f"https://site{n}.example",
        namespace=f"site{n}-example-{1700000000000 + n}",
        pages_crawled=n,
        created_at="2023-11-14T22:13:20Z",
        metadata={"title": f"{title} {n}"},
    )


@pytest.fixture(params=["memory", "file", "redis"])
def adapter(request, tmp_path):
    if request.param == "memory":
        return MemoryStorageAdapter()
    if request.param == "file":
        return FileStorageAdapter(tmp_path / "nested" / "indexes.json")
    return RedisStorageAdapter(FakeRedis())


@pytest.mark.asyncio
async def test_empty_store(adapter):
    assert await adapter.get_indexes() == []
    assert await adapter.get_index("missing") is None


@pytest.mark.asyncio
async def test_new_entries_are_inserted_at_head(adapter):
    await adapter.save_index(make_index(1))
    await adapter.save_index(make_index(2))

    indexes = await adapter.get_indexes()
    assert [i.namespace for i in indexes] == [make_index(2).namespace, make_index(1).namespace]


@pytest.mark.asyncio
async def test_save_is_idempotent(adapter):
    await adapter.save_index(make_index(1))
    await adapter.save_index(make_index(2))
    before = await adapter.get_indexes()

    await adapter.save_index(make_index(1))
    after = await adapter.get_indexes()

    assert after == before


@pytest.mark.asyncio
async def test_upsert_replaces_in_place(adapter):
    await adapter.save_index(make_index(1))
    await adapter.save_index(make_index(2))
    await adapter.save_index(make_index(1, title="Renamed"))

    indexes = await adapter.get_indexes()
    assert len(indexes) == 2
    assert indexes[1].metadata.title == "Renamed 1"
    found = await adapter.get_index(make_index(1).namespace)
    assert found.metadata.title == "Renamed 1"


@pytest.mark.asyncio
async def test_cap_evicts_oldest(adapter):
    for n in range(51):
        await adapter.save_index(make_index(n))

    indexes = await adapter.get_indexes()
    namespaces = [i.namespace for i in indexes]
    assert len(indexes) == 50
    assert namespaces[0] == make_index(50).namespace
    assert make_index(0).namespace not in namespaces
    assert await adapter.get_index(make_index(0).namespace) is None
    assert await adapter.get_index(make_index(1).namespace) is not None


@pytest.mark.asyncio
async def test_delete(adapter):
    await adapter.save_index(make_index(1))
    await adapter.save_index(make_index(2))

    await adapter.delete_index(make_index(1).namespace)

    assert [i.namespace for i in await adapter.get_indexes()] == [make_index(2).namespace]
    assert await adapter.get_index(make_index(1).namespace) is None


@pytest.mark.asyncio
async def test_file_adapter_reads_camel_case_records(tmp_path):
    path = tmp_path / "indexes.json"
    path.write_text(json.dumps([{
        "url": "https://example.com",
        "namespace": "example-com-1700000000000",
        "pagesCrawled": 3,
        "createdAt": "2023-11-14T22:13:20Z",
        "metadata": {"title": "Example", "ogImage": "https://example.com/og.png"},
    }]), encoding="utf-8")

    index = await FileStorageAdapter(path).get_index("example-com-1700000000000")

    assert index.pages_crawled == 3
    assert index.slug == "example-com-1700000000000"
    assert index.metadata.og_image == "https://example.com/og.png"
    assert len(index.metadata.quick_prompts) == 3


@pytest.mark.asyncio
async def test_redis_adapter_keeps_point_lookup_records():
    fake = FakeRedis()
    adapter = RedisStorageAdapter(fake)

    await adapter.save_index(make_index(1))

    assert json.loads(fake.data[index_key(make_index(1).namespace)])["namespace"] == make_index(1).namespace
    assert len(json.loads(fake.data[INDEXES_KEY])) == 1

    await adapter.delete_index(make_index(1).namespace)
    assert index_key(make_index(1).namespace) not in fake.data


# ---------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_registry_swallows_backend_failures():
    registry = IndexRegistry(BrokenAdapter())

    assert await registry.get_indexes() == []
    assert registry.last_result.kind is StorageErrorKind.READ_FAILED
    assert await registry.get_index("x") is None

    result = await registry.save_index(make_index(1))
    assert not result.ok
    assert result.kind is StorageErrorKind.WRITE_FAILED
    assert "unreachable" in result.error

    result = await registry.delete_index("x")
    assert result.kind is StorageErrorKind.WRITE_FAILED


@pytest.mark.asyncio
async def test_registry_without_adapter_reports_unavailable():
    registry = IndexRegistry(None)

    assert await registry.get_indexes() == []
    result = await registry.save_index(make_index(1))
    assert result.kind is StorageErrorKind.UNAVAILABLE


@pytest.mark.asyncio
async def test_registry_updates_quick_prompts():
    registry = IndexRegistry(MemoryStorageAdapter())
    await registry.save_index(make_index(1))

    result = await registry.update_quick_prompts(make_index(1).namespace, ["  Er der altan?  "])

    assert result.ok
    stored = await registry.get_index(make_index(1).namespace)
    assert stored.metadata.quick_prompts[0] == "Er der altan?"
    assert len(stored.metadata.quick_prompts) == 3


@pytest.mark.asyncio
async def test_registry_update_unknown_namespace():
    registry = IndexRegistry(MemoryStorageAdapter())
    result = await registry.update_quick_prompts("nope", ["a"])
    assert result.kind is StorageErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_find_by_slug_falls_back_to_namespace():
    registry = IndexRegistry(MemoryStorageAdapter())
    custom = make_index(1).model_copy(update={"slug": "my-bot"})
    await registry.save_index(custom)
    await registry.save_index(make_index(2))

    assert (await registry.find_by_slug("my-bot")).namespace == make_index(1).namespace
    assert (await registry.find_by_slug(make_index(2).namespace)).namespace == make_index(2).namespace
    assert await registry.find_by_slug("unknown") is None


# ---------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------

def test_auto_selects_file_without_redis(tmp_path):
    config = Settings(storage_backend="auto", redis_url=None, storage_path=str(tmp_path / "x.json"))
    assert isinstance(create_storage_adapter(config), FileStorageAdapter)


def test_auto_selects_redis_when_configured():
    config = Settings(storage_backend="auto", redis_url="redis://localhost:6379/0")
    assert isinstance(create_storage_adapter(config), RedisStorageAdapter)


def test_explicit_memory_backend():
    assert isinstance(create_storage_adapter(Settings(storage_backend="memory")), MemoryStorageAdapter)


def test_redis_backend_without_url_yields_no_adapter():
    assert create_storage_adapter(Settings(storage_backend="redis", redis_url=None)) is None
