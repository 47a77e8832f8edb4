"""Tests for the Redis response cache."""

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from planmoni_admin import cache
from planmoni_admin.cache import cache_key, cached, invalidate


class MemoryRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def setex(self, key: str, _ttl: int, value: str) -> None:
        self.store[key] = value

    async def scan_iter(self, match: str):  # noqa: ANN201
        prefix = match.rstrip("*")
        for key in list(self.store):
            if key.startswith(prefix):
                yield key

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)


def test_cache_key_formats_parts() -> None:
    assert cache_key("users", "ada", None, 2) == "cache:users:ada::2"


@pytest.mark.asyncio
async def test_passthrough_without_redis() -> None:
    calls = []

    async def loader() -> dict:
        calls.append(1)
        return {"ok": True}

    assert await cached("cache:users:", 60, loader) == {"ok": True}
    assert await cached("cache:users:", 60, loader) == {"ok": True}
    assert len(calls) == 2
    assert await invalidate() == 0


@pytest.mark.asyncio
async def test_second_read_served_from_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    redis = MemoryRedis()
    monkeypatch.setattr(cache, "get_redis", lambda: redis)
    calls = []

    async def loader() -> dict:
        calls.append(1)
        return {"total": 3}

    key = cache_key("dashboard", "stats")
    assert await cached(key, 60, loader) == {"total": 3}
    assert await cached(key, 60, loader) == {"total": 3}
    assert len(calls) == 1
    assert json.loads(redis.store[key]) == {"total": 3}


@pytest.mark.asyncio
async def test_invalidate_only_named_areas(monkeypatch: pytest.MonkeyPatch) -> None:
    redis = MemoryRedis()
    redis.store = {"cache:users::": "[]", "cache:users:ada": "[]", "cache:banners:False": "[]"}
    monkeypatch.setattr(cache, "get_redis", lambda: redis)

    assert await invalidate(["users"]) == 2
    assert list(redis.store) == ["cache:banners:False"]


class DownRedis:
    """Every command fails the way an unreachable server does."""

    async def get(self, _key: str) -> str | None:
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379")

    async def setex(self, _key: str, _ttl: int, _value: str) -> None:
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379")

    async def scan_iter(self, match: str):  # noqa: ANN201
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379")
        yield match


class ReadOnlyRedis(MemoryRedis):
    async def setex(self, _key: str, _ttl: int, _value: str) -> None:
        raise RedisConnectionError("Connection reset by peer")


@pytest.mark.asyncio
async def test_unreachable_redis_serves_loader(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cache, "get_redis", lambda: DownRedis())

    async def loader() -> dict:
        return {"total": 7}

    assert await cached(cache_key("dashboard", "stats"), 10, loader) == {"total": 7}
    assert await invalidate(["dashboard"]) == 0


@pytest.mark.asyncio
async def test_failed_cache_write_still_returns_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cache, "get_redis", lambda: ReadOnlyRedis())

    async def loader() -> list:
        return [1, 2]

    assert await cached(cache_key("users", "all"), 10, loader) == [1, 2]


@pytest.mark.asyncio
async def test_loader_errors_are_not_swallowed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cache, "get_redis", lambda: DownRedis())

    async def loader() -> dict:
        raise LookupError("missing")

    with pytest.raises(LookupError):
        await cached(cache_key("users", "u1"), 10, loader)
