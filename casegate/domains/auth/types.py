"""Auth domain type definitions for type safety."""

from typing import Optional

from pydantic import BaseModel, Field


class GatewayTokenPayload(BaseModel):
    """Claims carried by a gateway session token."""

    sub: str = Field(..., description="Subject (upstream user ID)")
    sid: str = Field(..., description="Gateway session identifier")
    iat: Optional[int] = Field(None, description="Issued at timestamp")
    exp: Optional[int] = Field(None, description="Expiration timestamp")

    model_config = {"extra": "allow"}
