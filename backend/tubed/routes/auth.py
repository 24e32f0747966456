"""Auth API routes: exchange the access code for a session token."""
import logging
from fastapi import APIRouter, Depends, Request, Response

from tubed.auth import AUTH_COOKIE, access_code_matches, create_access_token, require_auth, verify_token
from tubed.config import Settings
from tubed.dependencies import get_settings
from tubed.errors import AuthenticationError, TubedError
from tubed.schemas.auth import LoginRequest, LoginResponse, VerifyResponse
from tubed.schemas.file import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
):
    """Check the access code and issue a session token (also set as a cookie)."""
    if not settings.AUTH_CODE:
        logger.error("Login attempted but AUTH_CODE is not configured")
        raise TubedError("Server configuration error")
    if not access_code_matches(settings, body.auth_code):
        raise AuthenticationError("Invalid access code")

    token = create_access_token(settings)
    response.set_cookie(
        AUTH_COOKIE,
        token,
        max_age=settings.JWT_EXPIRATION_HOURS * 3600,
        httponly=True,
        samesite="strict",
    )
    return LoginResponse(token=token)


@router.get("/verify", response_model=VerifyResponse)
async def verify(request: Request, settings: Settings = Depends(get_settings)):
    """Report whether the session cookie (or bearer token) is still valid."""
    header = request.headers.get("authorization", "")
    token = header[len("Bearer "):] if header.startswith("Bearer ") else request.cookies.get(AUTH_COOKIE)
    if not token:
        raise AuthenticationError("No authentication token found")
    payload = verify_token(settings, token)
    exp = payload.get("exp")
    return VerifyResponse(authenticated=True, expires_at=exp * 1000 if exp else None)


@router.post("/logout", response_model=MessageResponse, dependencies=[Depends(require_auth)])
async def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(AUTH_COOKIE, httponly=True, samesite="strict")
    return MessageResponse(message="Logged out")
