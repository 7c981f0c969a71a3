"""Video record model."""

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
import uuid

from database import Base


class Video(Base):
    """Uploaded video owned by a single user.

    ``video_url`` stays NULL until an upload has been written to object
    storage; ``thumbnail_url`` is managed by the thumbnail endpoints.
    """

    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
