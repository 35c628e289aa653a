"""Tests for the read cache backends."""

import json

import pytest
import redis

from rolling_paper.core.errors import StorageError
from rolling_paper.core.settings import Settings
from rolling_paper.services.cache import MemoryCache, NullCache, RedisCache, build_cache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_memory_cache_round_trip(make_record) -> None:
    cache = MemoryCache()
    records = [make_record(), make_record()]

    assert cache.get_all() is None
    cache.put_all(records)
    cache.put_message(records[0])

    assert cache.get_all() == records
    assert cache.get_message(records[0].id) == records[0]
    assert cache.get_message("other") is None


def test_memory_cache_expires_entries(make_record) -> None:
    clock = FakeClock()
    cache = MemoryCache(list_ttl=60, message_ttl=300, clock=clock)
    record = make_record()
    cache.put_all([record])
    cache.put_message(record)

    clock.now = 61
    assert cache.get_all() is None
    assert cache.get_message(record.id) == record

    clock.now = 301
    assert cache.get_message(record.id) is None


def test_memory_cache_invalidate(make_record) -> None:
    cache = MemoryCache()
    kept, dropped = make_record(), make_record()
    cache.put_all([kept, dropped])
    cache.put_message(kept)
    cache.put_message(dropped)

    cache.invalidate(dropped.id)

    assert cache.get_all() is None
    assert cache.get_message(dropped.id) is None
    assert cache.get_message(kept.id) == kept


def test_null_cache_always_misses(make_record) -> None:
    cache = NullCache()
    cache.put_all([make_record()])
    assert cache.get_all() is None


@pytest.fixture
def redis_client(mocker):
    return mocker.MagicMock(spec=redis.Redis)


def test_redis_cache_stores_json_with_ttl(redis_client, make_record) -> None:
    cache = RedisCache(redis_client, list_ttl=60, message_ttl=300)
    record = make_record(password="pw")

    cache.put_message(record)

    key, value = redis_client.set.call_args.args
    assert key == f"rolling_paper:messages:id:{record.id}"
    assert json.loads(value) == record.to_dict()
    assert redis_client.set.call_args.kwargs == {"ex": 300}


def test_redis_cache_reads_entries(redis_client, make_record) -> None:
    record = make_record()
    redis_client.get.return_value = json.dumps([record.to_dict()]).encode()
    cache = RedisCache(redis_client)

    assert cache.get_all() == [record]
    redis_client.get.assert_called_once_with("rolling_paper:messages:all")


def test_redis_read_failure_is_a_miss(redis_client) -> None:
    redis_client.get.side_effect = redis.ConnectionError("down")
    cache = RedisCache(redis_client)

    assert cache.get_all() is None
    assert cache.get_message("x") is None


def test_redis_invalidate_deletes_list_and_message(redis_client) -> None:
    cache = RedisCache(redis_client)

    cache.invalidate("m1")

    redis_client.delete.assert_called_once_with(
        "rolling_paper:messages:all", "rolling_paper:messages:id:m1"
    )


def test_redis_invalidate_failure_raises(redis_client) -> None:
    redis_client.delete.side_effect = redis.ConnectionError("down")
    cache = RedisCache(redis_client)

    with pytest.raises(StorageError):
        cache.invalidate("m1")


def test_build_cache_selects_backend(mocker) -> None:
    from_url = mocker.patch("rolling_paper.services.cache.redis.from_url")

    assert isinstance(build_cache(Settings(CACHE_BACKEND="none")), NullCache)
    assert isinstance(build_cache(Settings(CACHE_BACKEND="memory")), MemoryCache)
    assert isinstance(build_cache(Settings(CACHE_BACKEND="redis", REDIS_URL="redis://cache:6379")), RedisCache)
    from_url.assert_called_once_with("redis://cache:6379")
