"""Video record and video upload router."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from models.video import Video
from routers.auth_scope import AuthContext, auth_scheme, bearer_credential, get_auth_context
from services.errors import VideoPipelineError
from services.faststart import FastStartRewriter
from services.media_probe import MediaProber
from services.object_store import S3ObjectStore, build_s3_client
from services.video_store import VideoStore
from services.video_upload import UploadRequest, VideoUploadPipeline

router = APIRouter()


class CreateVideoRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=5000)


class VideoResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def serialize_video(video: Video) -> VideoResponse:
    return VideoResponse(
        id=video.id,
        user_id=video.user_id,
        title=video.title,
        description=video.description,
        thumbnail_url=video.thumbnail_url,
        video_url=video.video_url,
        created_at=video.created_at.isoformat() if video.created_at else None,
        updated_at=video.updated_at.isoformat() if video.updated_at else None,
    )


def get_video_store(db: AsyncSession = Depends(get_db)) -> VideoStore:
    return VideoStore(db)


def get_media_prober() -> MediaProber:
    return MediaProber(ffprobe_bin=settings.FFPROBE_BIN, timeout=settings.PROBE_TIMEOUT_SECONDS)


def get_faststart_rewriter() -> FastStartRewriter:
    return FastStartRewriter(ffmpeg_bin=settings.FFMPEG_BIN, timeout=settings.REMUX_TIMEOUT_SECONDS)


@lru_cache(maxsize=1)
def get_object_store() -> S3ObjectStore:
    client = build_s3_client(
        access_key_id=settings.AWS_ACCESS_KEY_ID,
        secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region=settings.S3_REGION,
        connect_timeout=settings.STORAGE_CONNECT_TIMEOUT_SECONDS,
        read_timeout=settings.STORAGE_READ_TIMEOUT_SECONDS,
    )
    return S3ObjectStore(client, settings.S3_BUCKET)


def get_upload_pipeline(
    videos: VideoStore = Depends(get_video_store),
    prober: MediaProber = Depends(get_media_prober),
    rewriter: FastStartRewriter = Depends(get_faststart_rewriter),
    object_store: S3ObjectStore = Depends(get_object_store),
) -> VideoUploadPipeline:
    return VideoUploadPipeline(
        videos=videos,
        prober=prober,
        rewriter=rewriter,
        object_store=object_store,
        tmp_dir=settings.UPLOAD_TMP_DIR,
        public_base_url=settings.S3_CF_DISTRO,
    )


async def _get_owned_video(videos: VideoStore, video_id: str, user_id: str) -> Video:
    video = await videos.get(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Couldn't find video")
    if video.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not authorized to access this video")
    return video


@router.post("/videos", response_model=VideoResponse, status_code=201)
async def create_video(
    request: CreateVideoRequest,
    auth: AuthContext = Depends(get_auth_context),
    videos: VideoStore = Depends(get_video_store),
):
    """Create a draft video record owned by the caller."""
    try:
        video = await videos.create(auth.user_id, request.title.strip(), request.description)
    except VideoPipelineError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return serialize_video(video)


@router.get("/videos", response_model=List[VideoResponse])
async def list_videos(
    auth: AuthContext = Depends(get_auth_context),
    videos: VideoStore = Depends(get_video_store),
):
    return [serialize_video(video) for video in await videos.list_for_user(auth.user_id)]


@router.get("/videos/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: str,
    auth: AuthContext = Depends(get_auth_context),
    videos: VideoStore = Depends(get_video_store),
):
    return serialize_video(await _get_owned_video(videos, video_id, auth.user_id))


@router.put("/video_upload/{video_id}", response_model=VideoResponse)
async def upload_video(
    video_id: str,
    video: Optional[UploadFile] = File(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    pipeline: VideoUploadPipeline = Depends(get_upload_pipeline),
):
    """Upload an mp4, rewrite it for fast start and publish it to object storage."""
    request = UploadRequest(
        video_id=video_id,
        credential=bearer_credential(credentials),
        file=video,
    )
    try:
        updated = await pipeline.run(request)
    except VideoPipelineError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return serialize_video(updated)
