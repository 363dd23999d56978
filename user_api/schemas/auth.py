"""
Pydantic schemas for the authentication endpoint.

Two strategies are accepted:
  - "local": username + password
  - "jwt":   an access token from an earlier authentication
"""

from pydantic import BaseModel, ConfigDict, Field

from user_api.schemas.user import UserResponse


class AuthenticationRequest(BaseModel):
    """Request body for POST /authentication."""
    model_config = ConfigDict(populate_by_name=True)

    strategy: str = "local"
    username: str | None = None
    password: str | None = None
    access_token: str | None = Field(None, alias="accessToken")


class AuthenticationInfo(BaseModel):
    strategy: str


class AuthenticationResponse(BaseModel):
    """Access token plus the external view of the authenticated user."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    authentication: AuthenticationInfo
    user: UserResponse
