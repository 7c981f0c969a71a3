"""Routers package."""

from . import (
    health,
    videos,
    thumbnails,
)
