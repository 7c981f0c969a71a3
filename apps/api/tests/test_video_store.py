import asyncio
import io
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from starlette.datastructures import Headers, UploadFile

from database import Base
from services.errors import RecordStoreFailure
from services.faststart import FastStartRewriter
from services.media_probe import MediaProber
from services.tool_runner import ToolResult
from services.upload_locks import KeyedLock
from services.video_store import VideoStore
from services.video_upload import UploadRequest, VideoUploadPipeline

CDN_BASE = "https://cdn.example.test"
OWNER_ID = "owner-1"


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'videos.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


def _commit_error():
    return OperationalError("UPDATE videos SET video_url=?", {}, Exception("disk I/O error"))


def _probe_runner(width, height):
    def _run(args, timeout=None):
        stdout = json.dumps({"streams": [{"width": width, "height": height}]})
        return ToolResult(args=list(args), returncode=0, stdout=stdout, stderr="")

    return _run


def _remux_runner(args, timeout=None):
    output = next(arg for arg in args if str(arg).endswith(".processed"))
    Path(output).write_bytes(b"faststart-video")
    return ToolResult(args=list(args), returncode=0, stdout="", stderr="")


def _upload(data=b"fake-mp4-bytes"):
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename="clip.mp4",
        headers=Headers({"content-type": "video/mp4"}),
    )


class _RecordingObjectStore:
    def __init__(self):
        self.puts = []
        self.deleted = []

    def put_file(self, key, path, content_type):
        self.puts.append(key)

    def delete(self, key):
        self.deleted.append(key)


def _pipeline(tmp_path, store, object_store, probe, locks):
    return VideoUploadPipeline(
        videos=store,
        prober=MediaProber(runner=_probe_runner(*probe)),
        rewriter=FastStartRewriter(runner=_remux_runner),
        object_store=object_store,
        tmp_dir=tmp_path / "uploads",
        public_base_url=CDN_BASE,
        authenticate=lambda credential: credential,
        locks=locks,
    )


async def _create_video(session_maker) -> str:
    async with session_maker() as session:
        video = await VideoStore(session).create(OWNER_ID, "Harbour timelapse")
        return video.id


async def _stored_url(session_maker, video_id):
    async with session_maker() as session:
        return (await VideoStore(session).get(video_id)).video_url


@pytest.mark.asyncio
async def test_create_assigns_id_and_get_reads_it_back(session_maker):
    video_id = await _create_video(session_maker)

    async with session_maker() as session:
        store = VideoStore(session)
        video = await store.get(video_id)
        assert video.user_id == OWNER_ID
        assert video.video_url is None
        assert [v.id for v in await store.list_for_user(OWNER_ID)] == [video_id]
        assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_failed_commit_raises_record_store_failure_and_keeps_row(session_maker):
    video_id = await _create_video(session_maker)

    async with session_maker() as session:
        store = VideoStore(session)
        video = await store.get(video_id)
        video.video_url = f"{CDN_BASE}/landscape/{video_id}.mp4"
        with patch.object(session, "commit", side_effect=_commit_error()):
            with pytest.raises(RecordStoreFailure) as exc_info:
                await store.update(video)

    assert video_id in str(exc_info.value)
    assert await _stored_url(session_maker, video_id) is None


@pytest.mark.asyncio
async def test_pipeline_reports_record_failure_from_real_store(session_maker, tmp_path):
    video_id = await _create_video(session_maker)
    object_store = _RecordingObjectStore()

    async with session_maker() as session:
        pipeline = _pipeline(tmp_path, VideoStore(session), object_store, (1280, 720), KeyedLock())
        with patch.object(session, "commit", side_effect=_commit_error()):
            with pytest.raises(RecordStoreFailure):
                await pipeline.run(UploadRequest(video_id=video_id, credential=OWNER_ID, file=_upload()))

    assert object_store.puts == [f"landscape/{video_id}.mp4"]
    assert list((tmp_path / "uploads").iterdir()) == []
    assert await _stored_url(session_maker, video_id) is None


@pytest.mark.asyncio
async def test_get_fresh_sees_change_committed_by_another_session(session_maker):
    video_id = await _create_video(session_maker)

    async with session_maker() as reader, session_maker() as writer:
        stale = await VideoStore(reader).get(video_id)
        assert stale.video_url is None

        changed = await VideoStore(writer).get(video_id)
        changed.video_url = f"{CDN_BASE}/portrait/{video_id}.mp4"
        await VideoStore(writer).update(changed)

        fresh = await VideoStore(reader).get(video_id, fresh=True)
        assert fresh is stale
        assert fresh.video_url == f"{CDN_BASE}/portrait/{video_id}.mp4"


@pytest.mark.asyncio
async def test_concurrent_uploads_with_orientation_change_leave_no_orphan(session_maker, tmp_path):
    video_id = await _create_video(session_maker)
    object_store = _RecordingObjectStore()
    locks = KeyedLock()

    async with session_maker() as first_session, session_maker() as second_session:
        landscape = _pipeline(tmp_path, VideoStore(first_session), object_store, (1280, 720), locks)
        portrait = _pipeline(tmp_path, VideoStore(second_session), object_store, (720, 1280), locks)

        await asyncio.gather(
            landscape.run(UploadRequest(video_id=video_id, credential=OWNER_ID, file=_upload())),
            portrait.run(UploadRequest(video_id=video_id, credential=OWNER_ID, file=_upload())),
        )

    first_key, second_key = object_store.puts
    assert {first_key, second_key} == {f"landscape/{video_id}.mp4", f"portrait/{video_id}.mp4"}
    assert object_store.deleted == [first_key]
    assert await _stored_url(session_maker, video_id) == f"{CDN_BASE}/{second_key}"
    assert len(locks) == 0
