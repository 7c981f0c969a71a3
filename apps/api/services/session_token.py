"""Session token helpers for bearer authentication."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings
from services.errors import AuthFailure


SESSION_TOKEN_TYPE = "video_api_session"


def create_session_token(
    user_id: str,
    expires_hours: Optional[int] = None,
) -> Dict[str, Any]:
    """Create a signed session token for API authentication."""
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or settings.JWT_EXPIRATION_HOURS or 24)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))
    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }

    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {
        "token": token,
        "expires_at": int(expires_at.timestamp()),
    }


def decode_session_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """Decode and validate a signed session token."""
    try:
        payload = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    token_type = str(payload.get("type", "")).strip()
    if token_type != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")

    subject = str(payload.get("sub", "")).strip()
    if not subject:
        raise ValueError("Session token missing subject.")

    return payload


def authenticate_bearer(credential: Optional[str], secret: Optional[str] = None) -> str:
    """Resolve a raw bearer credential to its user id."""
    if not credential or not credential.strip():
        raise AuthFailure("Missing Bearer session token.")
    try:
        payload = decode_session_token(credential.strip(), secret)
    except ValueError as exc:
        raise AuthFailure(str(exc)) from exc
    return str(payload["sub"]).strip()
