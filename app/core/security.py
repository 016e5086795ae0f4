from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config.settings import settings
from app.core.errors import AuthError, ConfigurationError, InvalidTokenError, TokenExpiredError
from app.models.schemas import SessionUser


bearer_scheme = HTTPBearer(auto_error=False)


def _secret() -> str:
    if not settings.jwt_secret:
        raise ConfigurationError("JWT secret is not configured")
    return settings.jwt_secret


def create_access_token(github_user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token for a GitHub user profile (raw GitHub /user payload)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expire_hours))
    payload = {
        "id": github_user["id"],
        "username": github_user["login"],
        "email": github_user.get("email"),
        "avatar": github_user.get("avatar_url"),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> SessionUser:
    try:
        payload = jwt.decode(token.strip(), _secret(), algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Your session has expired. Please log in again.")
    except jwt.InvalidTokenError:
        raise InvalidTokenError("The provided token is invalid.")

    try:
        return SessionUser(
            id=payload["id"],
            username=payload["username"],
            email=payload.get("email"),
            avatar=payload.get("avatar"),
        )
    except (KeyError, ValueError):
        raise InvalidTokenError("The provided token is missing user claims.")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionUser:
    """FastAPI dependency guarding private routes with a Bearer session token"""
    if not credentials or not credentials.credentials:
        raise AuthError("Please provide a valid access token in the Authorization header")
    return decode_access_token(credentials.credentials)
