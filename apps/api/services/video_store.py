"""Video record persistence."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.video import Video
from services.errors import RecordStoreFailure

logger = logging.getLogger(__name__)


class VideoStore:
    """Reads and writes ``Video`` rows through one request-scoped session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, video_id: str, fresh: bool = False) -> Optional[Video]:
        """Look up one video; ``fresh`` overwrites any copy already held by the session."""
        stmt = select(Video).where(Video.id == video_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> List[Video]:
        result = await self.db.execute(
            select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, user_id: str, title: str, description: Optional[str] = None) -> Video:
        video = Video(user_id=user_id, title=title, description=description)
        return await self.update(video)

    async def update(self, video: Video) -> Video:
        """Commit ``video`` atomically; nothing is persisted on failure."""
        # Attributes are expired by rollback and cannot be lazy-loaded afterwards.
        video_id = video.id
        try:
            self.db.add(video)
            await self.db.commit()
            await self.db.refresh(video)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to persist video %s", video_id)
            raise RecordStoreFailure(f"Could not save video {video_id}") from exc
        return video
