"""
Video Ingestion API - FastAPI Backend
Main application entry point with health check and API routing.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import health, thumbnails, videos
from services.assets import ensure_assets_dir
from services.thumbnails import ThumbnailCache


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Video Ingestion API...")
    validate_security_settings()
    ensure_assets_dir(settings.ASSETS_ROOT)
    Path(settings.UPLOAD_TMP_DIR).mkdir(parents=True, exist_ok=True)
    if settings.AUTO_CREATE_DB_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("🗄️ Database schema verified.")
    yield
    # Shutdown
    app.state.thumbnail_cache.clear()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Video Ingestion API",
    description="Upload videos, optimize them for streaming and publish them to object storage",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.thumbnail_cache = ThumbnailCache(settings.THUMBNAIL_CACHE_MAX_ENTRIES)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(videos.router, prefix="/api", tags=["Videos"])
app.include_router(thumbnails.router, prefix="/api", tags=["Thumbnails"])

app.mount("/assets", StaticFiles(directory=settings.ASSETS_ROOT, check_dir=False), name="assets")
app.mount("/app", StaticFiles(directory=settings.FILEPATH_ROOT, html=True, check_dir=False), name="app")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Video Ingestion API",
        "version": "0.1.0",
        "platform": settings.PLATFORM,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.PORT)
