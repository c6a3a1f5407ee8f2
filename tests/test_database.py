"""Tests for the SQLite reference store."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from codedrop.database import ReferenceStore
from codedrop.errors import DuplicateKey, StoreUnavailable
from codedrop.models import FileReference


def _past():
    return datetime.now(timezone.utc) - timedelta(hours=1)


def _future():
    return datetime.now(timezone.utc) + timedelta(hours=1)


async def test_put_then_get(store):
    created = await store.put(code="004821", url="blob://bucket/a.pdf", name="a.pdf")

    fetched = await store.get("004821")
    assert isinstance(fetched, FileReference)
    assert fetched.code == "004821"
    assert fetched.url == "blob://bucket/a.pdf"
    assert fetched.name == "a.pdf"
    assert fetched.expires_at is None
    assert int(fetched.created_at.timestamp()) == int(created.created_at.timestamp())


async def test_get_missing_returns_none(store):
    assert await store.get("999999") is None


async def test_put_duplicate_live_code_is_rejected(store):
    await store.put(code="123456", url="blob://bucket/first", name="first.txt")

    with pytest.raises(DuplicateKey):
        await store.put(code="123456", url="blob://bucket/second", name="second.txt")

    # The original share is untouched
    fetched = await store.get("123456")
    assert fetched.url == "blob://bucket/first"


async def test_put_replaces_expired_code(store):
    await store.put(code="123456", url="blob://bucket/old", name="old.txt", expires_at=_past())

    await store.put(code="123456", url="blob://bucket/new", name="new.txt")

    fetched = await store.get("123456")
    assert fetched.url == "blob://bucket/new"


async def test_get_expired_returns_none_and_deletes(store):
    await store.put(code="111111", url="blob://bucket/x", name="x", expires_at=_past())

    assert await store.get("111111") is None
    assert await store.purge_expired() == 0


async def test_get_not_yet_expired(store):
    await store.put(code="111111", url="blob://bucket/x", name="x", expires_at=_future())

    fetched = await store.get("111111")
    assert fetched is not None
    assert fetched.expires_at is not None


async def test_concurrent_puts_same_code_have_one_winner(store):
    results = await asyncio.gather(
        *(store.put(code="555555", url=f"blob://bucket/{i}", name=f"{i}.bin") for i in range(8)),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, FileReference)]
    losers = [r for r in results if isinstance(r, DuplicateKey)]
    assert len(winners) == 1
    assert len(losers) == 7

    fetched = await store.get("555555")
    assert fetched.url == winners[0].url


async def test_concurrent_puts_different_codes(store):
    codes = [f"{i:06d}" for i in range(10)]
    await asyncio.gather(*(store.put(code=c, url=f"blob://bucket/{c}", name=c) for c in codes))

    for c in codes:
        fetched = await store.get(c)
        assert fetched.url == f"blob://bucket/{c}"
    assert await store.count() == 10


async def test_take_returns_and_deletes(store):
    await store.put(code="222222", url="blob://bucket/y", name="y")

    taken = await store.take("222222")
    assert taken.url == "blob://bucket/y"
    assert await store.get("222222") is None
    assert await store.take("222222") is None


async def test_take_race_has_one_winner(store):
    await store.put(code="333333", url="blob://bucket/z", name="z")

    results = await asyncio.gather(*(store.take("333333") for _ in range(5)))

    assert sum(1 for r in results if r is not None) == 1


async def test_take_expired_returns_none(store):
    await store.put(code="444444", url="blob://bucket/w", name="w", expires_at=_past())
    assert await store.take("444444") is None


async def test_delete(store):
    await store.put(code="666666", url="blob://bucket/d", name="d")

    assert await store.delete("666666") is True
    assert await store.get("666666") is None
    assert await store.delete("666666") is False


async def test_purge_expired(store):
    await store.put(code="000001", url="blob://bucket/1", name="1", expires_at=_past())
    await store.put(code="000002", url="blob://bucket/2", name="2", expires_at=_past())
    await store.put(code="000003", url="blob://bucket/3", name="3", expires_at=_future())
    await store.put(code="000004", url="blob://bucket/4", name="4")

    assert await store.purge_expired() == 2
    assert await store.count() == 2
    assert await store.get("000003") is not None
    assert await store.get("000004") is not None


async def test_timeout_is_store_unavailable(store, monkeypatch):
    async def slow_get(code):
        await asyncio.sleep(1)

    monkeypatch.setattr(store, "_get", slow_get)
    store.timeout = 0.05

    with pytest.raises(StoreUnavailable):
        await store.get("123456")


async def test_unreachable_database_is_store_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    store = ReferenceStore(blocker / "codedrop.db")

    with pytest.raises(StoreUnavailable):
        await store.init()
    with pytest.raises(StoreUnavailable):
        await store.get("123456")
