"""Thumbnail upload and retrieval router."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import Response

from config import settings
from routers.auth_scope import AuthContext, get_auth_context
from routers.videos import VideoResponse, get_video_store, serialize_video
from services.assets import get_asset_disk_path, get_asset_url
from services.errors import BadRequest, VideoPipelineError
from services.thumbnails import (
    MAX_THUMBNAIL_UPLOAD_BYTES,
    Thumbnail,
    ThumbnailCache,
    validate_thumbnail,
    write_thumbnail_asset,
)
from services.video_store import VideoStore

router = APIRouter()


def get_thumbnail_cache(request: Request) -> ThumbnailCache:
    return request.app.state.thumbnail_cache


@router.get("/thumbnails/{video_id}")
async def get_thumbnail(
    video_id: str,
    videos: VideoStore = Depends(get_video_store),
    cache: ThumbnailCache = Depends(get_thumbnail_cache),
):
    """Serve the cached thumbnail bytes for a video."""
    video = await videos.get(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Couldn't find video")

    thumbnail = cache.get(video_id)
    if not thumbnail:
        raise HTTPException(status_code=404, detail="Thumbnail not found")

    return Response(
        content=thumbnail.data,
        media_type=thumbnail.media_type,
        headers={"Cache-Control": "no-store"},
    )


@router.post("/thumbnail_upload/{video_id}", response_model=VideoResponse)
async def upload_thumbnail(
    video_id: str,
    thumbnail: Optional[UploadFile] = File(None),
    auth: AuthContext = Depends(get_auth_context),
    videos: VideoStore = Depends(get_video_store),
    cache: ThumbnailCache = Depends(get_thumbnail_cache),
):
    """Store a jpeg/png thumbnail and point the video record at it."""
    try:
        media_type = validate_thumbnail(thumbnail)
        data = await thumbnail.read()
        if not data:
            raise BadRequest("Thumbnail file is empty")
        if len(data) > MAX_THUMBNAIL_UPLOAD_BYTES:
            raise BadRequest("Thumbnail file exceeds the maximum allowed size of 10MB")
    except VideoPipelineError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    video = await videos.get(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Couldn't find video")
    if video.user_id != auth.user_id:
        raise HTTPException(status_code=403, detail="Not authorized to update this video")

    asset_path = write_thumbnail_asset(settings.ASSETS_ROOT, data, media_type)
    video.thumbnail_url = get_asset_url(settings.asset_base_url, asset_path)
    try:
        video = await videos.update(video)
    except VideoPipelineError as exc:
        Path(get_asset_disk_path(settings.ASSETS_ROOT, asset_path)).unlink(missing_ok=True)
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    cache.put(video_id, Thumbnail(data=data, media_type=media_type))
    return serialize_video(video)
