"""
User model — the stored user record.

Python attributes are snake_case; the wire names used by schemas and API
responses (`_id`, `createdAt`, `updatedAt`) are mapped in
`user_api/schemas/user.py`.

Timestamps are integer epoch milliseconds set by the data resolvers, not by
column defaults, so the values the API reports are exactly the ones stored.
The password column only ever holds an Argon2 hash.
"""

import uuid

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from user_api.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    # Opaque string id assigned on insert
    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=_new_id,
    )

    # Login identifier, unique and indexed for lookups during authentication
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash (never plaintext)
    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    avatar: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
    )

    created_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    updated_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
