"""Local asset directory helpers."""

import os
import secrets
from pathlib import Path


def ensure_assets_dir(assets_root: str) -> Path:
    root = Path(assets_root)
    root.mkdir(parents=True, exist_ok=True)
    return root


def media_type_to_ext(media_type: str) -> str:
    """``image/png`` -> ``.png``; anything not shaped type/subtype -> ``.bin``."""
    parts = (media_type or "").split("/")
    if len(parts) != 2 or not parts[1]:
        return ".bin"
    return "." + parts[1]


def get_asset_path(media_type: str) -> str:
    """Random, URL-safe asset file name with an extension from ``media_type``."""
    return secrets.token_urlsafe(32) + media_type_to_ext(media_type)


def get_asset_disk_path(assets_root: str, asset_path: str) -> str:
    return os.path.join(assets_root, asset_path)


def get_asset_url(asset_base_url: str, asset_path: str) -> str:
    return f"{asset_base_url.rstrip('/')}/{asset_path}"
