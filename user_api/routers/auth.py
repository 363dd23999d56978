"""
Authentication router.

Endpoint:
  POST /authentication  — Exchange credentials for a JWT access token

Body for the local strategy:
    {"strategy": "local", "username": "alice", "password": "..."}

Body for the jwt strategy (re-authentication):
    {"strategy": "jwt", "accessToken": "<token>"}

Plaintext passwords exist only in memory while the request is handled;
they are never logged or returned.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from user_api.database import get_db
from user_api.schemas.auth import AuthenticationRequest, AuthenticationResponse
from user_api.services import auth_service

router = APIRouter()


@router.post(
    "",
    response_model=AuthenticationResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    summary="Authenticate and get an access token",
)
async def authenticate(
    request: AuthenticationRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate and receive a bearer token for the Authorization header:

        Authorization: Bearer <accessToken>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    return await auth_service.authenticate(
        db=db,
        strategy=request.strategy,
        username=request.username,
        password=request.password,
        access_token=request.access_token,
    )
