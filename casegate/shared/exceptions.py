# casegate/shared/exceptions.py
from fastapi import HTTPException, status


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid token"
        )


class SessionNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or logged out",
        )


class NotAuthorizedError(HTTPException):
    def __init__(self, detail: str = "Not authorized") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class RouteRedirect(HTTPException):
    """Raised by route guards to send the client to another page."""

    def __init__(self, location: str, reason: str | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            detail=reason or f"Redirect to {location}",
            headers={"Location": location},
        )
        self.location = location


# Configuration Exceptions
class GatewayConfigurationError(HTTPException):
    def __init__(self, message: str = "Gateway is not configured") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
        )


# Upstream API Exceptions
class UpstreamAuthenticationError(HTTPException):
    def __init__(self, message: str = "Upstream authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class UpstreamConnectionError(HTTPException):
    def __init__(self, message: str = "Upstream API unavailable") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)
