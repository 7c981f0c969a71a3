"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Fields without a default are required; a missing one makes
    ``Settings()`` raise at import time so the process never starts
    half-configured.
    """

    # Database
    DB_PATH: str

    # Auth
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Runtime
    PLATFORM: str
    FILEPATH_ROOT: str
    ASSETS_ROOT: str
    PORT: int
    API_HOST: str = "0.0.0.0"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # S3 / CloudFront
    S3_BUCKET: str
    S3_REGION: str
    S3_CF_DISTRO: str
    AWS_ACCESS_KEY_ID: str
    AWS_SECRET_ACCESS_KEY: str
    STORAGE_CONNECT_TIMEOUT_SECONDS: float = 10.0
    STORAGE_READ_TIMEOUT_SECONDS: float = 300.0

    # Video processing
    UPLOAD_TMP_DIR: str = "/tmp/video_uploads"
    FFPROBE_BIN: str = "ffprobe"
    FFMPEG_BIN: str = "ffmpeg"
    PROBE_TIMEOUT_SECONDS: float = 30.0
    REMUX_TIMEOUT_SECONDS: float = 600.0

    # Thumbnails
    THUMBNAIL_CACHE_MAX_ENTRIES: int = 256

    AUTO_CREATE_DB_SCHEMA: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.DB_PATH}"

    @property
    def asset_base_url(self) -> str:
        return f"http://localhost:{self.PORT}/assets"


settings = Settings()


def validate_security_settings() -> None:
    """Fail fast when an insecure JWT secret is configured outside dev."""
    if settings.PLATFORM == "dev":
        return
    insecure_values = {
        "",
        "change_me_in_production",
        "your_jwt_secret_change_in_production",
    }
    jwt_secret = (settings.JWT_SECRET or "").strip()
    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
