"""Authentication dependencies for API user scoping."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.errors import AuthFailure
from services.session_token import authenticate_bearer


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: str


def bearer_credential(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Raw token from the Authorization header, or None if absent/not Bearer."""
    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> AuthContext:
    """Resolve authenticated user from Bearer session token."""
    try:
        user_id = authenticate_bearer(bearer_credential(credentials))
    except AuthFailure as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return AuthContext(user_id=user_id)
