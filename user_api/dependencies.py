"""
FastAPI dependencies for authentication.

  get_optional_user  Bearer token -> User, or None when no token is sent
  get_current_user   Bearer token -> User, 401 when missing or invalid

The user returned here becomes HookContext.user, the actor the query
resolver restricts get/patch/remove to.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from user_api.database import get_db
from user_api.exceptions import NotAuthenticatedError
from user_api.models.user import User
from user_api.services.auth_service import user_from_token


# Reads "Authorization: Bearer <token>". auto_error=False lets a missing
# token through so the optional variant can return None.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/authentication", auto_error=False)


async def get_optional_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Return the authenticated User, or None for anonymous requests.

    A token that is present but invalid is still rejected with 401.
    """
    if token is None:
        return None
    return await user_from_token(db, token)


async def get_current_user(
    user: User | None = Depends(get_optional_user),
) -> User:
    """
    Require an authenticated User.

    Raises:
        NotAuthenticatedError (401): If no token was sent.
    """
    if user is None:
        raise NotAuthenticatedError("Not authenticated")
    return user
