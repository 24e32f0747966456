"""Shared access code check and signed session tokens.

A caller is authenticated when it presents either
- the access code itself (``Authorization: Bearer <code>`` or ``x-auth-code``), or
- a session token issued by ``/api/auth/login`` (bearer header or the
  ``auth-token`` cookie).
"""
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt

from tubed.config import Settings
from tubed.dependencies import get_settings
from tubed.errors import AuthenticationError

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth-token"


def access_code_matches(settings: Settings, provided: Optional[str]) -> bool:
    if not settings.AUTH_CODE or not provided:
        return False
    return hmac.compare_digest(provided.encode(), settings.AUTH_CODE.encode())


def create_access_token(settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "authenticated": True,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=settings.JWT_EXPIRATION_HOURS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(settings: Settings, token: str) -> dict[str, Any]:
    """Decode a session token. Raises AuthenticationError if invalid or expired."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Session expired, please log in again")
    except JWTError as e:
        logger.debug("Rejected session token: %s", e)
        raise AuthenticationError("Invalid authentication token")
    if not payload.get("authenticated"):
        raise AuthenticationError("Invalid authentication token")
    return payload


def _bearer(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return None


async def require_auth(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """FastAPI dependency. Returns the auth method used: "authcode" or "jwt"."""
    bearer = _bearer(request)
    if access_code_matches(settings, bearer or request.headers.get("x-auth-code")):
        return "authcode"

    token = bearer or request.cookies.get(AUTH_COOKIE)
    if not token:
        raise AuthenticationError("Authentication required: log in or provide the access code")
    verify_token(settings, token)
    return "jwt"
