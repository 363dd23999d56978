"""
Authentication service — exchanges credentials for an access token.

Strategies:
  local  Look the user up by username and verify the password against the
         stored Argon2 hash.
  jwt    Re-authenticate with a still-valid access token (the same token
         is returned).

Security notes:
  - Unknown username and wrong password raise the same NotAuthenticatedError
    ("Invalid login") so valid usernames cannot be enumerated
  - The returned user goes through the external resolver, so no password
    hash is ever part of the response
"""

from jose import JWTError
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from user_api.exceptions import NotAuthenticatedError, UnsupportedStrategyError
from user_api.models.user import User
from user_api.resolvers import HookContext
from user_api.security import create_access_token, decode_access_token, verify_password
from user_api.services.user_service import to_external


STRATEGIES = ("local", "jwt")


async def _authenticate_local(
    db: AsyncSession, username: str | None, password: str | None
) -> User:
    if not username or not password:
        raise NotAuthenticatedError()

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    # Same error for an unknown username and a wrong password
    if user is None or not verify_password(password, user.password):
        logger.warning("Failed local authentication for username {}", username)
        raise NotAuthenticatedError()

    return user


async def user_from_token(db: AsyncSession, token: str) -> User:
    """
    Resolve the user an access token was issued to.

    Raises:
        NotAuthenticatedError: If the token is invalid or expired, or its
            user no longer exists.
    """
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise NotAuthenticatedError("Invalid access token") from None

    user_id = payload.get("sub")
    if user_id is None:
        raise NotAuthenticatedError("Invalid access token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotAuthenticatedError("Invalid access token")
    return user


async def authenticate(
    db: AsyncSession,
    strategy: str,
    username: str | None = None,
    password: str | None = None,
    access_token: str | None = None,
) -> dict:
    """
    Authenticate with the given strategy.

    Returns:
        {"accessToken": ..., "authentication": {"strategy": ...}, "user": {...}}

    Raises:
        UnsupportedStrategyError: If the strategy is not local or jwt.
        NotAuthenticatedError: If the credentials are rejected.
    """
    if strategy not in STRATEGIES:
        raise UnsupportedStrategyError(strategy)

    if strategy == "local":
        user = await _authenticate_local(db, username, password)
        access_token = create_access_token(data={"sub": user.id})
    else:
        if not access_token:
            raise NotAuthenticatedError("No access token")
        user = await user_from_token(db, access_token)

    logger.info("User {} authenticated via {}", user.id, strategy)

    context = HookContext(method="get", user=user, id=user.id)
    return {
        "accessToken": access_token,
        "authentication": {"strategy": strategy},
        "user": await to_external(user, context),
    }
