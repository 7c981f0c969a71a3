import asyncio

import pytest

from services.upload_locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    events = []

    async def _worker(name: str):
        async with locks.hold("video-1"):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    await asyncio.gather(_worker("a"), _worker("b"))

    assert events in (
        ["a:start", "a:end", "b:start", "b:end"],
        ["b:start", "b:end", "a:start", "a:end"],
    )
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_different_keys_run_concurrently():
    locks = KeyedLock()
    inside = asyncio.Event()
    release = asyncio.Event()

    async def _first():
        async with locks.hold("video-1"):
            inside.set()
            await release.wait()

    task = asyncio.create_task(_first())
    await inside.wait()
    async with locks.hold("video-2"):
        assert len(locks) == 2
    release.set()
    await task
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_when_body_raises():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        async with locks.hold("video-1"):
            raise RuntimeError("remux exploded")

    async with locks.hold("video-1"):
        pass
    assert len(locks) == 0
