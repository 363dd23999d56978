"""
Security utilities: password hashing and JWT tokens.

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext runs Argon2id and can verify hashes made by
     older schemes if the active one ever changes ("deprecated='auto'")
   - Hashing contexts are registered per strategy name. "local" (username
     + password login) is the only strategy that stores passwords.

2. JWT TOKENS
   - After authentication the user receives a signed JWT whose "sub"
     claim is their user id
   - Signed with SECRET_KEY (HS256 by default), expires after
     ACCESS_TOKEN_EXPIRE_MINUTES
"""

from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from user_api.config import settings
from user_api.exceptions import UnsupportedStrategyError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Strategy name -> hashing context
HASH_CONTEXTS: dict[str, CryptContext] = {
    "local": pwd_context,
}


def _get_context(strategy: str) -> CryptContext:
    try:
        return HASH_CONTEXTS[strategy]
    except KeyError:
        raise UnsupportedStrategyError(strategy) from None


def hash_password(plain_password: str, strategy: str = "local") -> str:
    """
    Hash a plaintext password with the given strategy's context.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
        Salted, so two calls with the same input give different hashes.
    """
    return _get_context(strategy).hash(plain_password)


def verify_password(
    plain_password: str, hashed_password: str, strategy: str = "local"
) -> bool:
    """Verify a plaintext password against a stored hash (constant time)."""
    return _get_context(strategy).verify(plain_password, hashed_password)


def password_hash(strategy: str = "local"):
    """
    Build a field resolver that replaces a plaintext password with its hash.

    An absent password stays absent. The strategy is checked here, when the
    resolver table is built, not on every call.

    Usage:
        Resolver({"password": password_hash(strategy="local")})
    """
    _get_context(strategy)

    async def resolve_password(value, data, context):
        if value is None:
            return None
        return hash_password(value, strategy)

    return resolve_password


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (must include "sub", the user id).
        expires_delta: Optional custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
