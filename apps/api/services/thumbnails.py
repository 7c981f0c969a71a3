"""Thumbnail upload validation and the in-memory thumbnail cache."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from services.assets import get_asset_disk_path, get_asset_path
from services.errors import BadRequest

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_THUMBNAIL_TYPES = ("image/jpeg", "image/png")


@dataclass(frozen=True)
class Thumbnail:
    data: bytes
    media_type: str


class ThumbnailCache:
    """
    Bounded LRU of thumbnails keyed by video id.

    Lives for the lifetime of the process: nothing is persisted, it is empty
    after a restart, and there is no TTL. The least recently used entry is
    evicted once ``max_entries`` is exceeded.
    """

    def __init__(self, max_entries: int = 256):
        self.max_entries = max(int(max_entries), 1)
        self._entries: "OrderedDict[str, Thumbnail]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, video_id: str) -> Optional[Thumbnail]:
        with self._lock:
            thumbnail = self._entries.get(video_id)
            if thumbnail is not None:
                self._entries.move_to_end(video_id)
            return thumbnail

    def put(self, video_id: str, thumbnail: Thumbnail) -> None:
        with self._lock:
            self._entries[video_id] = thumbnail
            self._entries.move_to_end(video_id)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.info("Evicted cached thumbnail for video %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def validate_thumbnail(file: Any) -> str:
    """Return the thumbnail media type, raising ``BadRequest`` when unusable."""
    if file is None:
        raise BadRequest("Thumbnail file missing")
    size = getattr(file, "size", None)
    if size is not None and size > MAX_THUMBNAIL_UPLOAD_BYTES:
        raise BadRequest("Thumbnail file exceeds the maximum allowed size of 10MB")
    media_type = getattr(file, "content_type", None)
    if media_type not in ALLOWED_THUMBNAIL_TYPES:
        raise BadRequest("Thumbnail should be image/jpeg or image/png")
    return media_type


def write_thumbnail_asset(assets_root: str, data: bytes, media_type: str) -> str:
    """Persist thumbnail bytes under a random asset name; returns that name."""
    asset_path = get_asset_path(media_type)
    disk_path = Path(get_asset_disk_path(assets_root, asset_path))
    disk_path.parent.mkdir(parents=True, exist_ok=True)
    disk_path.write_bytes(data)
    return asset_path
