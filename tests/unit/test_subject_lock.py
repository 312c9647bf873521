"""Tests for the in-process and Redis per-subject locks."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from lifecycle.application.services.subject_lock import InProcessSubjectLock
from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.infrastructure.cache import RedisSubjectLock
from lifecycle.infrastructure.cache.keys import erasure_lock_key


async def test_in_process_lock_is_exclusive_per_subject() -> None:
    lock = InProcessSubjectLock()

    assert await lock.acquire("s1") is True
    assert await lock.acquire("s1") is False
    assert await lock.acquire("s2") is True

    await lock.release("s1")
    assert await lock.acquire("s1") is True


async def test_in_process_release_of_unheld_subject_is_noop() -> None:
    lock = InProcessSubjectLock()
    await lock.release("s1")
    assert not lock.is_held("s1")


def test_lock_key_format() -> None:
    assert erasure_lock_key("s1") == "erasure-lock:s1"


async def test_redis_acquire_uses_set_nx_px() -> None:
    client = AsyncMock()
    client.set.return_value = True
    lock = RedisSubjectLock(redis_client=client, ttl_seconds=60)

    assert await lock.acquire("s1") is True

    args, kwargs = client.set.await_args
    assert args[0] == "erasure-lock:s1"
    assert kwargs == {"nx": True, "px": 60_000}
    await lock.release("s1")


async def test_redis_acquire_held_by_other_returns_false() -> None:
    client = AsyncMock()
    client.set.return_value = None
    lock = RedisSubjectLock(redis_client=client)

    assert await lock.acquire("s1") is False

    await lock.release("s1")
    client.eval.assert_not_awaited()


async def test_redis_release_compares_token() -> None:
    """Release deletes the key only through the compare-and-delete script with our token."""
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 1
    lock = RedisSubjectLock(redis_client=client)
    await lock.acquire("s1")
    token = client.set.await_args.args[1]

    await lock.release("s1")

    args = client.eval.await_args.args
    assert args[1:] == (1, "erasure-lock:s1", token)
    assert 'redis.call("del", KEYS[1])' in args[0]


async def _until_awaited(mock: AsyncMock, count: int = 1) -> None:
    for _ in range(200):
        if mock.await_count >= count:
            return
        await asyncio.sleep(0.005)


async def test_redis_heartbeat_renews_with_token_while_held() -> None:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 1
    lock = RedisSubjectLock(redis_client=client, ttl_seconds=60, renew_interval_seconds=0.01)
    await lock.acquire("s1")
    token = client.set.await_args.args[1]

    await _until_awaited(client.eval, 2)

    script, numkeys, key, *argv = client.eval.await_args_list[0].args
    assert 'redis.call("pexpire", KEYS[1], ARGV[2])' in script
    assert (numkeys, key, argv) == (1, "erasure-lock:s1", [token, 60_000])
    assert lock.is_renewing("s1")
    await lock.release("s1")


async def test_redis_release_stops_heartbeat() -> None:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 1
    lock = RedisSubjectLock(redis_client=client, renew_interval_seconds=0.01)
    await lock.acquire("s1")

    await lock.release("s1")
    calls_after_release = client.eval.await_count
    await asyncio.sleep(0.05)

    assert not lock.is_renewing("s1")
    assert client.eval.await_count == calls_after_release
    assert 'redis.call("del", KEYS[1])' in client.eval.await_args.args[0]


async def test_redis_heartbeat_stops_when_lock_lost() -> None:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 0
    lock = RedisSubjectLock(redis_client=client, renew_interval_seconds=0.01)
    await lock.acquire("s1")

    await _until_awaited(client.eval)
    await asyncio.sleep(0.05)

    assert not lock.is_renewing("s1")
    assert client.eval.await_count == 1
    await lock.release("s1")


async def test_redis_heartbeat_survives_connection_error() -> None:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.side_effect = [RedisConnectionError("reset"), 1, 1, 1, 1, 1, 1, 1, 1, 1]
    lock = RedisSubjectLock(redis_client=client, renew_interval_seconds=0.01)
    await lock.acquire("s1")

    await _until_awaited(client.eval, 2)

    assert lock.is_renewing("s1")
    client.eval.side_effect = None
    client.eval.return_value = 1
    await lock.release("s1")


async def test_redis_disconnect_stops_heartbeats() -> None:
    client = AsyncMock()
    client.set.return_value = True
    lock = RedisSubjectLock(redis_client=client, renew_interval_seconds=0.01)
    await lock.acquire("s1")

    await lock.disconnect()

    assert not lock.is_renewing("s1")
    client.aclose.assert_awaited_once()


async def test_redis_expired_lock_release_does_not_raise() -> None:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 0
    lock = RedisSubjectLock(redis_client=client)
    await lock.acquire("s1")

    await lock.release("s1")
    assert client.eval.await_count == 1


async def test_redis_connection_error_is_transient() -> None:
    client = AsyncMock()
    client.set.side_effect = RedisConnectionError("refused")
    lock = RedisSubjectLock(redis_client=client)

    with pytest.raises(TransientStoreError) as exc_info:
        await lock.acquire("s1")
    assert exc_info.value.details["operation"] == "lock:acquire"


async def test_redis_not_connected_is_transient() -> None:
    lock = RedisSubjectLock()
    with pytest.raises(TransientStoreError, match="redis not connected"):
        await lock.acquire("s1")


async def test_redis_disconnect_closes_client() -> None:
    client = AsyncMock()
    lock = RedisSubjectLock(redis_client=client)

    await lock.disconnect()

    client.aclose.assert_awaited_once()
    assert lock.redis is None
