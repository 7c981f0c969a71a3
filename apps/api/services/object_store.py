"""S3 object store writes and public URL helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from services.errors import ProcessingTimeout, StorageWriteFailure

logger = logging.getLogger(__name__)

VIDEO_EXTENSION = ".mp4"


def storage_key(aspect: str, video_id: str) -> str:
    """Stable key so re-uploads of the same video overwrite one slot."""
    return f"{aspect}/{video_id}{VIDEO_EXTENSION}"


def _normalized_base(base_url: str) -> str:
    base = (base_url or "").strip().rstrip("/")
    if not urlparse(base).scheme:
        base = f"https://{base}"
    return base


def public_url(base_url: str, key: str) -> str:
    """Externally reachable URL for ``key`` under the distribution address."""
    return f"{_normalized_base(base_url)}/{key.lstrip('/')}"


def key_from_public_url(base_url: str, url: Optional[str]) -> Optional[str]:
    """Inverse of ``public_url``; None when ``url`` is not under ``base_url``."""
    if not url:
        return None
    prefix = f"{_normalized_base(base_url)}/"
    if not url.startswith(prefix):
        return None
    return url[len(prefix):] or None


def build_s3_client(
    access_key_id: str,
    secret_access_key: str,
    region: str,
    connect_timeout: float,
    read_timeout: float,
):
    return boto3.client(
        "s3",
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        region_name=region,
        config=Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        ),
    )


class S3ObjectStore:
    """Key-addressed writes into a single bucket."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def put_file(self, key: str, path: Union[str, Path], content_type: str) -> None:
        """Upload ``path`` under ``key``, replacing any existing object."""
        try:
            self.client.upload_file(
                Filename=str(path),
                Bucket=self.bucket,
                Key=key,
                ExtraArgs={"ContentType": content_type},
            )
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise ProcessingTimeout(f"Object store write timed out for {key}") from exc
        except (BotoCoreError, ClientError) as exc:
            raise StorageWriteFailure(f"Object store write failed for {key}: {exc}") from exc
        logger.info("Stored s3://%s/%s (%s)", self.bucket, key, content_type)

    def delete(self, key: str) -> None:
        """Best-effort removal of a superseded object."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Could not delete s3://%s/%s: %s", self.bucket, key, exc)
