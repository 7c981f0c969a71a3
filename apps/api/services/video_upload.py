"""
Video upload pipeline.

Validating -> Buffering -> Probing -> Remuxing -> Uploading -> Recording -> Done.
Every exit after Buffering removes the raw upload and the fast-start copy;
``video_url`` is only written once the object store write has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from models.video import Video
from services.errors import BadRequest, Forbidden, NotFound, VideoPipelineError
from services.faststart import FastStartRewriter, processed_path_for
from services.media_probe import MediaProber
from services.object_store import key_from_public_url, public_url, storage_key
from services.session_token import authenticate_bearer
from services.upload_locks import KeyedLock, video_upload_locks
from services.video_store import VideoStore

logger = logging.getLogger(__name__)

MAX_VIDEO_UPLOAD_BYTES = 1 << 30  # 1 GiB
VIDEO_CONTENT_TYPE = "video/mp4"
UPLOAD_CHUNK_BYTES = 1024 * 1024


class UploadStage(str, Enum):
    VALIDATING = "validating"
    BUFFERING = "buffering"
    PROBING = "probing"
    REMUXING = "remuxing"
    UPLOADING = "uploading"
    RECORDING = "recording"
    DONE = "done"


@dataclass
class UploadRequest:
    video_id: Optional[str]
    credential: Optional[str]
    # Starlette UploadFile or anything with content_type, size and async read(n)
    file: Any


def raw_upload_path(tmp_dir: Union[str, Path], video_id: str) -> Path:
    return Path(tmp_dir) / f"{video_id}.mp4"


def validate_video_payload(file: Any) -> None:
    if file is None:
        raise BadRequest("Video file missing")
    size = getattr(file, "size", None)
    if size is not None and size > MAX_VIDEO_UPLOAD_BYTES:
        raise BadRequest("Video file exceeds the maximum allowed size of 1GB")
    if getattr(file, "content_type", None) != VIDEO_CONTENT_TYPE:
        raise BadRequest("Video should be video/mp4")


async def buffer_upload(file: Any, destination: Path, max_bytes: int) -> int:
    """Stream ``file`` to ``destination``; returns bytes written."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    total_size = 0
    with destination.open("wb") as out:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            total_size += len(chunk)
            if total_size > max_bytes:
                raise BadRequest("Video file exceeds the maximum allowed size of 1GB")
            out.write(chunk)
    return total_size


def discard_artifact(path: Optional[Union[str, Path]]) -> None:
    if not path:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not cleanup temporary upload file %s: %s", path, exc)


class VideoUploadPipeline:
    """Runs one upload end to end. Collaborators are injected so tests can fake them."""

    def __init__(
        self,
        *,
        videos: VideoStore,
        prober: MediaProber,
        rewriter: FastStartRewriter,
        object_store,
        tmp_dir: Union[str, Path],
        public_base_url: str,
        authenticate: Callable[[Optional[str]], str] = authenticate_bearer,
        locks: Optional[KeyedLock] = None,
    ):
        self.videos = videos
        self.prober = prober
        self.rewriter = rewriter
        self.object_store = object_store
        self.tmp_dir = Path(tmp_dir)
        self.public_base_url = public_base_url
        self.authenticate = authenticate
        self.locks = locks if locks is not None else video_upload_locks

    async def run(self, request: UploadRequest) -> Video:
        video_id = (request.video_id or "").strip()
        if not video_id:
            raise BadRequest("Invalid video ID")

        user_id = self.authenticate(request.credential)

        video = await self.videos.get(video_id)
        self._check_owner(video, user_id)

        validate_video_payload(request.file)

        logger.info("Uploading video %s for user %s", video_id, user_id)
        async with self.locks.hold(video_id):
            # A concurrent upload may have replaced video_url while we waited.
            video = await self.videos.get(video_id, fresh=True)
            self._check_owner(video, user_id)
            return await self._process(video, request.file)

    @staticmethod
    def _check_owner(video: Optional[Video], user_id: str) -> None:
        if video is None:
            raise NotFound("Couldn't find video")
        if video.user_id != user_id:
            raise Forbidden("Not authorized to update this video")

    async def _process(self, video: Video, file: Any) -> Video:
        video_id = video.id
        raw_path = raw_upload_path(self.tmp_dir, video_id)
        processed_path = processed_path_for(raw_path)
        stage = UploadStage.BUFFERING
        try:
            size = await buffer_upload(file, raw_path, MAX_VIDEO_UPLOAD_BYTES)
            logger.info("Buffered %s bytes for video %s", size, video_id)

            stage = UploadStage.PROBING
            aspect = await asyncio.to_thread(self.prober.get_aspect_ratio, raw_path)

            stage = UploadStage.REMUXING
            processed_path = await asyncio.to_thread(self.rewriter.rewrite, raw_path)

            stage = UploadStage.UPLOADING
            key = storage_key(aspect, video_id)
            await asyncio.to_thread(
                self.object_store.put_file, key, processed_path, VIDEO_CONTENT_TYPE
            )

            stage = UploadStage.RECORDING
            previous_key = key_from_public_url(self.public_base_url, video.video_url)
            url = public_url(self.public_base_url, key)
            video.video_url = url
            video = await self.videos.update(video)
            stage = UploadStage.DONE
        except VideoPipelineError as exc:
            logger.warning("Upload for video %s failed during %s: %s", video_id, stage.value, exc)
            raise
        except Exception:
            logger.exception("Upload for video %s failed during %s", video_id, stage.value)
            raise
        finally:
            discard_artifact(raw_path)
            discard_artifact(processed_path)

        if previous_key and previous_key != key:
            await asyncio.to_thread(self.object_store.delete, previous_key)

        logger.info("Video %s available at %s", video_id, url)
        return video
