# casegate/domains/auth/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from casegate.shared.permissions.models import User


class LoginRequest(BaseModel):
    email: str
    password: str


class UpstreamTokens(BaseModel):
    """`data` block of the upstream login and refresh responses."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    user: Optional[User] = None


class SessionState(BaseModel):
    user: User
    is_authenticated: bool
    permissions_ready: bool
    expires_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    session: SessionState


class LogoutResponse(BaseModel):
    success: bool
