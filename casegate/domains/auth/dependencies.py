# casegate/domains/auth/dependencies.py
from typing import Optional

from fastapi import Depends, Header, Request

from casegate.shared.exceptions import (
    GatewayConfigurationError,
    InvalidTokenError,
    SessionNotFoundError,
)

from .service import Session, SessionService


def get_session_service(request: Request) -> SessionService:
    """SessionService built by the application lifespan."""
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        raise GatewayConfigurationError("Session service is not initialised")
    return service


def get_bearer_token(authorization: str = Header(None)) -> Optional[str]:
    """
    Extracts the gateway token from the Authorization header.
    Returns None when the header is missing or not a bearer token.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def get_optional_session(
    token: Optional[str] = Depends(get_bearer_token),
    service: SessionService = Depends(get_session_service),
) -> Optional[Session]:
    """
    Live session for the request, or None for anonymous callers.
    An invalid or expired token is treated as anonymous.
    """
    if token is None:
        return None
    try:
        return service.resolve(token)
    except InvalidTokenError:
        return None


def get_current_session(
    token: Optional[str] = Depends(get_bearer_token),
    service: SessionService = Depends(get_session_service),
) -> Session:
    """
    Live session for the request.

    Raises:
        InvalidTokenError: If the token is missing, forged or expired
        SessionNotFoundError: If the token's session has logged out
    """
    if token is None:
        raise InvalidTokenError()
    session = service.resolve(token)
    if session is None:
        raise SessionNotFoundError()
    return session
