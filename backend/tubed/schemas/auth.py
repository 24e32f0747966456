"""Auth request/response schemas."""
from typing import Optional
from tubed.schemas.base import CamelModel, SuccessResponse


class LoginRequest(CamelModel):
    auth_code: str = ""


class LoginResponse(SuccessResponse):
    token: str
    message: str = "Login successful"


class VerifyResponse(CamelModel):
    authenticated: bool
    # Milliseconds since epoch, as the dashboard client expects
    expires_at: Optional[int] = None
