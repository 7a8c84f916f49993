"""Named response cache adapter tests (in-memory and filesystem)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from audioguide.adapters.cache_storage import FileCacheStorage, InMemoryCacheStorage
from audioguide.core.ports.cache import CacheStorageError, CacheStoragePort, QuotaExceededError
from audioguide.core.ports.network import FetchResponse

URL = "http://localhost:5173/index.html"


def _response(body: bytes = b"<html>", status: int = 200) -> FetchResponse:
    return FetchResponse(url=URL, status=status, body=body, headers={"content-type": "text/html"})


@pytest.fixture(params=["memory", "file"])
def storage(request: pytest.FixtureRequest, tmp_path: Path) -> CacheStoragePort:
    if request.param == "memory":
        return InMemoryCacheStorage()
    return FileCacheStorage(tmp_path / "caches")


class TestCacheStorageContract:
    def test_put_then_match(self, storage: CacheStoragePort) -> None:
        async def scenario() -> FetchResponse | None:
            cache = await storage.open("static-v1")
            await cache.put(URL, _response())
            return await (await storage.open("static-v1")).match(URL)

        hit = asyncio.run(scenario())

        assert hit is not None
        assert hit.body == b"<html>"
        assert hit.status == 200
        assert hit.content_type == "text/html"

    def test_miss(self, storage: CacheStoragePort) -> None:
        async def scenario() -> FetchResponse | None:
            return await (await storage.open("static-v1")).match(URL)

        assert asyncio.run(scenario()) is None

    def test_put_replaces(self, storage: CacheStoragePort) -> None:
        async def scenario() -> tuple[FetchResponse | None, list[str]]:
            cache = await storage.open("static-v1")
            await cache.put(URL, _response(b"old"))
            await cache.put(URL, _response(b"new"))
            return await cache.match(URL), await cache.keys()

        hit, keys = asyncio.run(scenario())
        assert hit is not None and hit.body == b"new"
        assert keys == [URL]

    def test_delete_entry(self, storage: CacheStoragePort) -> None:
        async def scenario() -> tuple[bool, bool]:
            cache = await storage.open("static-v1")
            await cache.put(URL, _response())
            return await cache.delete(URL), await cache.delete(URL)

        assert asyncio.run(scenario()) == (True, False)

    def test_cache_names_in_creation_order(self, storage: CacheStoragePort) -> None:
        async def scenario() -> list[str]:
            await storage.open("static-v2")
            await storage.open("static-v1")
            await storage.open("static-v2")
            return await storage.keys()

        assert asyncio.run(scenario()) == ["static-v2", "static-v1"]

    def test_delete_cache(self, storage: CacheStoragePort) -> None:
        async def scenario() -> tuple[bool, bool, bool]:
            cache = await storage.open("static-v1")
            await cache.put(URL, _response())
            deleted = await storage.delete("static-v1")
            return deleted, await storage.has("static-v1"), await storage.delete("static-v1")

        assert asyncio.run(scenario()) == (True, False, False)

    def test_caches_are_isolated(self, storage: CacheStoragePort) -> None:
        async def scenario() -> FetchResponse | None:
            await (await storage.open("static-v1")).put(URL, _response())
            return await (await storage.open("static-v2")).match(URL)

        assert asyncio.run(scenario()) is None


class TestQuota:
    @pytest.mark.parametrize("backend", ["memory", "file"])
    def test_quota_applies_to_new_urls_only(self, backend: str, tmp_path: Path) -> None:
        storage: CacheStoragePort = (
            InMemoryCacheStorage(max_entries=1)
            if backend == "memory"
            else FileCacheStorage(tmp_path, max_entries=1)
        )

        async def scenario() -> None:
            cache = await storage.open("static-v1")
            await cache.put(URL, _response())
            await cache.put(URL, _response(b"replacement"))
            await cache.put(URL + "?v=2", _response())

        with pytest.raises(QuotaExceededError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.limit == 1


class TestFileCacheStorage:
    def test_survives_new_instance(self, tmp_path: Path) -> None:
        async def write() -> None:
            cache = await FileCacheStorage(tmp_path).open("static-v1")
            await cache.put(URL, _response(b"persisted"))

        async def read() -> tuple[list[str], FetchResponse | None]:
            storage = FileCacheStorage(tmp_path)
            return await storage.keys(), await (await storage.open("static-v1")).match(URL)

        asyncio.run(write())
        names, hit = asyncio.run(read())

        assert names == ["static-v1"]
        assert hit is not None and hit.body == b"persisted"

    def test_cache_names_are_escaped_on_disk(self, tmp_path: Path) -> None:
        async def scenario() -> None:
            cache = await FileCacheStorage(tmp_path).open("../escape")
            await cache.put(URL, _response())

        asyncio.run(scenario())

        assert (tmp_path / "..%2Fescape").is_dir()
        assert not (tmp_path.parent / "escape").exists()

    def test_corrupt_index_raises(self, tmp_path: Path) -> None:
        (tmp_path / "index.json").write_text("{nope")

        with pytest.raises(CacheStorageError):
            asyncio.run(FileCacheStorage(tmp_path).keys())

    def test_non_list_index_raises(self, tmp_path: Path) -> None:
        (tmp_path / "index.json").write_text('{"static-v1": true}')

        with pytest.raises(CacheStorageError):
            asyncio.run(FileCacheStorage(tmp_path).keys())

    @pytest.mark.parametrize(
        "meta",
        [
            {"url": URL},
            {"status": 200},
            {"url": URL, "status": "ok"},
            [URL, 200],
            "broken",
        ],
    )
    def test_misshapen_metadata_raises_storage_error(self, tmp_path: Path, meta: object) -> None:
        async def scenario() -> FetchResponse | None:
            cache = await FileCacheStorage(tmp_path).open("static-v1")
            await cache.put(URL, _response())
            for meta_path in tmp_path.glob("*/*.meta.json"):
                meta_path.write_text(json.dumps(meta))
            return await cache.match(URL)

        with pytest.raises(CacheStorageError):
            asyncio.run(scenario())

    def test_misshapen_metadata_breaks_listing(self, tmp_path: Path) -> None:
        async def scenario() -> list[str]:
            cache = await FileCacheStorage(tmp_path).open("static-v1")
            await cache.put(URL, _response())
            for meta_path in tmp_path.glob("*/*.meta.json"):
                meta_path.write_text("[1, 2]")
            return await cache.keys()

        with pytest.raises(CacheStorageError):
            asyncio.run(scenario())
